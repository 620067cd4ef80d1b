import datetime
import enum
from enum import Enum
from functools import partial

from pydantic import BaseModel

utc_datetime_now = partial(datetime.datetime.now, datetime.timezone.utc)


class AccountType(str, Enum):
    POWER_BUSINESS = "powerBusiness"
    NATION = "nation"
    LOCAL_GOVERNMENT = "localGovernment"


class PrincipalRole(str, Enum):
    PROVIDER = "provider"
    CONSUMER = "consumer"


class Region(str, Enum):
    SEOUL = "1"
    BUSAN = "2"
    DAEGU = "3"
    INCHEON = "4"
    GWANGJU = "5"
    DAEJEON = "6"
    ULSAN = "7"
    SEJONG = "8"
    GYEONGGI = "9"
    GANGWON = "10"
    CHUNGBUK = "11"
    CHUNGNAM = "12"
    JEONBUK = "13"
    JEONNAM = "14"
    GYEONGBUK = "15"
    GYEONGNAM = "16"
    JEJU = "17"

    @property
    def label(self) -> str:
        return self.name.capitalize()


class IssuedStatus(str, Enum):
    YES = "y"
    NO = "n"


class RegoStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class RegoTradingStatus(str, Enum):
    BEFORE = "before"
    TRADING = "trading"
    END = "end"


class TradingApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVE = "approve"
    REJECTED = "rejected"
    CANCELED = "canceled"


class StakeholderType(str, Enum):
    """The three parties entitled to a share of a plant's generation."""

    OWNER = "owner"
    NATION = "nation"
    LOCAL_GOVERNMENT = "localGovernment"


class logging_levels(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingLevelRequest(BaseModel):
    level: logging_levels
