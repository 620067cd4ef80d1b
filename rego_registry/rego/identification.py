import secrets
import string
from typing import Callable

from rego_registry.core.exceptions import InternalError
from rego_registry.logging_config import logger
from rego_registry.settings import settings

BASE62_ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase


def random_suffix(length: int) -> str:
    return "".join(secrets.choice(BASE62_ALPHABET) for _ in range(length))


def create_unit_identification_number(batch_identification_number: str, sequence: int) -> str:
    return f"{batch_identification_number}-{sequence}"


class IdentificationNumberAllocator:
    """Hands out batch identification numbers for one issuance request.

    Candidates are checked against the numbers already handed out in this request
    and against ``is_taken``, which should look up every batch ever issued, so
    identifiers stay unique across the whole registry.
    """

    def __init__(
        self,
        is_taken: Callable[[str], bool],
        suffix_length: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.is_taken = is_taken
        self.suffix_length = suffix_length or settings.IDENTIFICATION_SUFFIX_LENGTH
        self.max_attempts = max_attempts or settings.IDENTIFICATION_MAX_ATTEMPTS
        self.allocated: set[str] = set()

    def allocate(self, plant_code: str) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = f"{plant_code}{random_suffix(self.suffix_length)}"
            if candidate in self.allocated or self.is_taken(candidate):
                logger.warning(
                    f"Identification number collision for plant {plant_code} "
                    f"(attempt {attempt}/{self.max_attempts})"
                )
                continue
            self.allocated.add(candidate)
            return candidate

        err_msg = (
            f"Could not allocate a unique identification number for plant {plant_code} "
            f"after {self.max_attempts} attempts."
        )
        logger.error(err_msg)
        raise InternalError(err_msg)
