import re
from decimal import Decimal, InvalidOperation

import pandas as pd
from sqlmodel import Session, select

from rego_registry.core.database import db
from rego_registry.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from rego_registry.core.models.base import IssuedStatus, StakeholderType
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.power_generation.models import PowerGeneration
from rego_registry.power_generation.schemas import (
    PRODUCTION_PERIOD_PATTERN,
    PowerGenerationImportResult,
    PowerGenerationRead,
)
from rego_registry.rego.services import get_plant_percentages
from rego_registry.rego.splitter import share_of

IMPORT_COLUMNS = ["plant_id", "electricity_production_period", "power_generation_amount"]


def get_power_generations(
    provider_id: int,
    read_session: Session,
    issued_status: IssuedStatus | None = None,
    plant_id: int | None = None,
) -> list[PowerGenerationRead]:
    """List a provider's generation records with the whole certificates each
    stakeholder's share amounts to, before any carried remainder is applied."""
    stmt = (
        select(PowerGeneration, Plant)
        .join(Plant, Plant.id == PowerGeneration.plant_id)  # type: ignore
        .where(Plant.provider_id == provider_id)
    )
    if issued_status is not None:
        stmt = stmt.where(PowerGeneration.issued_status == issued_status)
    if plant_id is not None:
        stmt = stmt.where(PowerGeneration.plant_id == plant_id)
    stmt = stmt.order_by(
        PowerGeneration.electricity_production_period.desc(),  # type: ignore
        PowerGeneration.id,
    )

    records = []
    for power_generation, plant in read_session.exec(stmt):
        percentages = get_plant_percentages(plant)
        amount = Decimal(power_generation.power_generation_amount)
        records.append(
            PowerGenerationRead(
                id=power_generation.id,  # type: ignore
                plant_id=plant.id,  # type: ignore
                plant_name=plant.plant_name,
                electricity_production_period=power_generation.electricity_production_period,
                power_generation_amount=amount,
                issued_status=power_generation.issued_status,
                issued_date=power_generation.issued_date,
                self_rego_count=int(share_of(amount, percentages[StakeholderType.OWNER])),
                nation_rego_count=int(share_of(amount, percentages[StakeholderType.NATION])),
                local_government_rego_count=int(
                    share_of(amount, percentages[StakeholderType.LOCAL_GOVERNMENT])
                ),
            )
        )
    return records


def _parse_amount(value: str, row_number: int) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        err_msg = f"Row {row_number}: '{value}' is not a valid generation amount."
        logger.error(err_msg)
        raise ValidationError(err_msg) from e

    if not amount.is_finite() or amount < 0:
        err_msg = f"Row {row_number}: generation amount must be zero or positive."
        logger.error(err_msg)
        raise ValidationError(err_msg)
    if amount.as_tuple().exponent < -3:  # type: ignore
        err_msg = f"Row {row_number}: generation amount has more than three decimal places."
        logger.error(err_msg)
        raise ValidationError(err_msg)
    return amount


def import_power_generations(
    provider_id: int,
    power_generation_df: pd.DataFrame,
    write_session: Session,
) -> PowerGenerationImportResult:
    """Create generation records from an uploaded meter reading file.

    Every row is validated before any record is inserted.

    Raises:
        ValidationError: If columns are missing or a row is malformed.
        AuthorizationError: If a row refers to a plant the provider does not own.
        ConflictError: If a record already exists for the plant and period.
    """
    missing = [c for c in IMPORT_COLUMNS if c not in power_generation_df.columns]
    if missing:
        err_msg = f"The import file is missing the columns: {', '.join(missing)}"
        logger.error(err_msg)
        raise ValidationError(err_msg)

    if power_generation_df.empty:
        err_msg = "The import file contains no generation records."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    with db.transaction(write_session):
        plants: dict[int, Plant] = {}
        seen: set[tuple[int, str]] = set()
        records: list[dict] = []

        for row_number, row in enumerate(
            power_generation_df[IMPORT_COLUMNS].to_dict(orient="records"), start=1
        ):
            try:
                plant_id = int(str(row["plant_id"]).strip())
            except ValueError as e:
                err_msg = f"Row {row_number}: '{row['plant_id']}' is not a valid plant id."
                logger.error(err_msg)
                raise ValidationError(err_msg) from e

            period = str(row["electricity_production_period"]).strip()
            if not re.match(PRODUCTION_PERIOD_PATTERN, period):
                err_msg = f"Row {row_number}: production period '{period}' must be in YYYY-MM format."
                logger.error(err_msg)
                raise ValidationError(err_msg)

            if plant_id not in plants:
                plants[plant_id] = Plant.by_id(plant_id, write_session)
            if plants[plant_id].provider_id != provider_id:
                err_msg = f"Row {row_number}: plant {plant_id} is not owned by the requesting provider."
                logger.error(err_msg)
                raise AuthorizationError(err_msg)

            existing = write_session.exec(
                select(PowerGeneration).where(
                    PowerGeneration.plant_id == plant_id,
                    PowerGeneration.electricity_production_period == period,
                )
            ).first()
            if existing is not None or (plant_id, period) in seen:
                err_msg = f"Row {row_number}: a generation record for plant {plant_id} and {period} already exists."
                logger.error(err_msg)
                raise ConflictError(err_msg)
            seen.add((plant_id, period))

            records.append(
                {
                    "plant_id": plant_id,
                    "electricity_production_period": period,
                    "power_generation_amount": _parse_amount(
                        row["power_generation_amount"], row_number
                    ),
                    "issued_status": IssuedStatus.NO,
                }
            )

        created = PowerGeneration.create(records, write_session)
        result = PowerGenerationImportResult(
            created_count=len(created),
            power_generation_ids=[pg.id for pg in created],  # type: ignore
        )

    logger.info(f"Provider {provider_id} imported {result.created_count} generation records")
    return result
