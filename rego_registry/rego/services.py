import datetime
from decimal import Decimal

import pandas as pd
from sqlmodel import Session, select
from sqlmodel.sql.expression import SelectOfScalar

from rego_registry.core.database import db
from rego_registry.core.exceptions import NotFoundError, ValidationError
from rego_registry.core.models.base import (
    IssuedStatus,
    RegoStatus,
    RegoTradingStatus,
    StakeholderType,
    TradingApplicationStatus,
)
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.power_generation.models import PowerGeneration
from rego_registry.provider.models import Provider
from rego_registry.rego.identification import (
    IdentificationNumberAllocator,
    create_unit_identification_number,
)
from rego_registry.rego.models import ProviderPlantCarriedAmount, Rego, RegoGroup
from rego_registry.rego.schemas import (
    RegoGroupMarketRead,
    RegoGroupQuery,
    RegoGroupRead,
    RegoIssueResult,
    RegoRead,
)
from rego_registry.rego.splitter import split_generation_amount
from rego_registry.rego.validation import (
    transition_rego_group,
    validate_power_generation_issuable,
    validate_rego_group_owner,
    validate_rego_group_sellable,
)
from rego_registry.rego_trade_info.models import RegoTradeInfo
from rego_registry.settings import settings
from rego_registry.utils import utc_datetime_now

EXPIRED_TRADE_REASON = "The REGO group expired before the trade was approved."


def add_years(value: datetime.datetime, years: int) -> datetime.datetime:
    """Calendar-aware year offset; 29 February falls back to 28 February."""
    return (pd.Timestamp(value) + pd.DateOffset(years=years)).to_pydatetime()


def get_plant_percentages(plant: Plant) -> dict[StakeholderType, Decimal]:
    return {
        StakeholderType.OWNER: Decimal(plant.self_supply_price_percent),
        StakeholderType.NATION: Decimal(plant.nation_supply_price_percent),
        StakeholderType.LOCAL_GOVERNMENT: Decimal(
            plant.local_government_supply_price_percent
        ),
    }


def resolve_stakeholder_provider_ids(
    plant: Plant,
    percentages: dict[StakeholderType, Decimal],
    session: Session,
) -> dict[StakeholderType, int]:
    """Map each stakeholder with a non-zero share to the provider receiving it.

    Raises:
        NotFoundError: If the nation or the local government of the plant's region
            is entitled to a share but has no provider account.
    """
    stakeholder_ids: dict[StakeholderType, int] = {StakeholderType.OWNER: plant.provider_id}

    if percentages[StakeholderType.NATION] > 0:
        nation = Provider.nation(session)
        if nation is None or nation.id is None:
            err_msg = "No nation provider account is registered to receive its share."
            logger.error(err_msg)
            raise NotFoundError(err_msg)
        stakeholder_ids[StakeholderType.NATION] = nation.id

    if percentages[StakeholderType.LOCAL_GOVERNMENT] > 0:
        local_government = Provider.local_government(plant.region, session)
        if local_government is None or local_government.id is None:
            err_msg = (
                f"No local government provider account is registered for region "
                f"{plant.region.label} to receive its share."
            )
            logger.error(err_msg)
            raise NotFoundError(err_msg)
        stakeholder_ids[StakeholderType.LOCAL_GOVERNMENT] = local_government.id

    return stakeholder_ids


def get_carried_amount_for_update(
    provider_id: int,
    plant_id: int,
    carried_rows: dict[tuple[int, int], ProviderPlantCarriedAmount],
    write_session: Session,
) -> ProviderPlantCarriedAmount:
    """Return the locked remainder row for a (stakeholder, plant) pair, creating it
    on first issuance. Rows are cached per request so each is locked only once."""
    key = (provider_id, plant_id)
    if key in carried_rows:
        return carried_rows[key]

    row = ProviderPlantCarriedAmount.get(
        provider_id, plant_id, write_session, for_update=True
    )
    if row is None:
        row = ProviderPlantCarriedAmount(
            provider_id=provider_id,
            plant_id=plant_id,
            carried_over_power_gen_amount=Decimal("0"),
        )
        write_session.add(row)

    carried_rows[key] = row
    return row


def create_rego_group(
    provider_id: int,
    stakeholder_type: StakeholderType,
    plant: Plant,
    power_generation: PowerGeneration,
    allocation: int,
    identification_number: str,
    issued_date: datetime.datetime,
    write_session: Session,
) -> RegoGroup:
    """Insert a batch and then one unit row per issued certificate.

    Units need the batch id, so the batch is flushed before they are created.
    """
    rego_group = RegoGroup(
        provider_id=provider_id,
        plant_id=plant.id,
        power_generation_id=power_generation.id,
        stakeholder_type=stakeholder_type,
        identification_number=identification_number,
        status=RegoStatus.ACTIVE,
        trading_status=RegoTradingStatus.BEFORE,
        electricity_production_period=power_generation.electricity_production_period,
        issued_generation_amount=allocation,
        remaining_generation_amount=allocation,
        issued_date=issued_date,
        expired_date=add_years(issued_date, settings.REGO_EXPIRY_YEARS),
    )
    write_session.add(rego_group)
    write_session.flush()

    write_session.add_all(
        [
            Rego(
                rego_group_id=rego_group.id,
                sequence_number=sequence,
                identification_number=create_unit_identification_number(
                    identification_number, sequence
                ),
            )
            for sequence in range(1, allocation + 1)
        ]
    )

    return rego_group


def issue_regos(
    provider_id: int,
    power_generation_ids: list[int],
    write_session: Session,
) -> RegoIssueResult:
    """Issue REGOs for a provider's unissued generation records.

    The issuance process consists of the following steps, all in one transaction:
    1. Lock the generation records and check that every one belongs to a plant
       owned by the provider and has not been issued yet.
    2. Process the records in ascending production period order so that the
       remainder carry is deterministic.
    3. For each record, split the generation amount between the plant owner, the
       nation and the local government of the plant's region, using each
       stakeholder's locked remainder row.
    4. Create one REGO group per stakeholder with a non-zero allocation, followed
       by its unit rows numbered 1..N.
    5. Mark the record as issued and store the updated remainders.

    Args:
        provider_id (int): The provider requesting issuance.
        power_generation_ids (list[int]): The generation records to issue for.
        write_session (Session): The database session to write to.

    Returns:
        RegoIssueResult: The created groups, unit count and updated remainders.

    Raises:
        ValidationError: If no records are given or a record is listed twice.
        NotFoundError: If a record does not exist.
        AuthorizationError: If a record's plant is not owned by the provider.
        ConflictError: If a record has already been issued.
    """
    if not power_generation_ids:
        err_msg = "At least one generation record must be selected for issuance."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    if len(set(power_generation_ids)) != len(power_generation_ids):
        err_msg = "The same generation record was selected more than once."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    with db.transaction(write_session):
        power_generations = write_session.exec(
            select(PowerGeneration)
            .where(PowerGeneration.id.in_(power_generation_ids))  # type: ignore
            .order_by(PowerGeneration.id)  # type: ignore
            .with_for_update()
        ).all()

        missing_ids = sorted(set(power_generation_ids) - {pg.id for pg in power_generations})
        if missing_ids:
            err_msg = f"Generation records not found: {missing_ids}"
            logger.error(err_msg)
            raise NotFoundError(err_msg)

        plants: dict[int, Plant] = {}
        for power_generation in power_generations:
            if power_generation.plant_id not in plants:
                plants[power_generation.plant_id] = Plant.by_id(
                    power_generation.plant_id, write_session
                )
            validate_power_generation_issuable(
                power_generation, plants[power_generation.plant_id], provider_id
            )

        ordered = sorted(
            power_generations,
            key=lambda pg: (pg.electricity_production_period, pg.id),
        )

        allocator = IdentificationNumberAllocator(
            is_taken=lambda candidate: RegoGroup.identification_number_exists(
                candidate, write_session
            )
        )
        carried_rows: dict[tuple[int, int], ProviderPlantCarriedAmount] = {}
        issued_date = utc_datetime_now()
        rego_groups: list[RegoGroup] = []

        for power_generation in ordered:
            plant = plants[power_generation.plant_id]
            percentages = get_plant_percentages(plant)
            stakeholder_ids = resolve_stakeholder_provider_ids(
                plant, percentages, write_session
            )

            rows = {
                stakeholder_type: get_carried_amount_for_update(
                    stakeholder_id, plant.id, carried_rows, write_session  # type: ignore
                )
                for stakeholder_type, stakeholder_id in stakeholder_ids.items()
            }
            shares = split_generation_amount(
                Decimal(power_generation.power_generation_amount),
                percentages,
                {
                    stakeholder_type: Decimal(row.carried_over_power_gen_amount)
                    for stakeholder_type, row in rows.items()
                },
            )

            for stakeholder_type, stakeholder_id in stakeholder_ids.items():
                share = shares[stakeholder_type]
                rows[stakeholder_type].carried_over_power_gen_amount = share.remainder
                rows[stakeholder_type].updated_at = issued_date

                if share.allocation == 0:
                    continue

                rego_groups.append(
                    create_rego_group(
                        provider_id=stakeholder_id,
                        stakeholder_type=stakeholder_type,
                        plant=plant,
                        power_generation=power_generation,
                        allocation=share.allocation,
                        identification_number=allocator.allocate(plant.plant_code),
                        issued_date=issued_date,
                        write_session=write_session,
                    )
                )

            power_generation.issued_status = IssuedStatus.YES
            power_generation.issued_date = issued_date
            write_session.add(power_generation)

        write_session.flush()

        result = RegoIssueResult(
            rego_groups=[RegoGroupRead.model_validate(group) for group in rego_groups],
            issued_unit_count=sum(group.issued_generation_amount for group in rego_groups),
            carried_over_amounts={
                f"{provider}:{plant_id}": Decimal(row.carried_over_power_gen_amount)
                for (provider, plant_id), row in carried_rows.items()
            },
        )

    logger.info(
        f"Issued {result.issued_unit_count} REGOs in {len(rego_groups)} groups "
        f"from {len(ordered)} generation records for provider {provider_id}"
    )
    return result


def list_rego_groups_for_sale(
    provider_id: int,
    rego_group_ids: list[int],
    write_session: Session,
) -> list[RegoGroupRead]:
    """Put REGO groups on the market: active/before becomes active/trading.

    Either every listed group is put on sale or none is.
    """
    if not rego_group_ids:
        err_msg = "At least one REGO group must be selected for sale."
        logger.error(err_msg)
        raise ValidationError(err_msg)

    with db.transaction(write_session):
        registration_date = utc_datetime_now()
        listed: list[RegoGroup] = []

        # Lock in id order to keep concurrent listings from deadlocking
        for rego_group_id in sorted(set(rego_group_ids)):
            rego_group = RegoGroup.by_id(rego_group_id, write_session, for_update=True)
            validate_rego_group_owner(rego_group, provider_id)
            validate_rego_group_sellable(rego_group)

            transition_rego_group(rego_group, RegoStatus.ACTIVE, RegoTradingStatus.TRADING)
            rego_group.transaction_registration_date = registration_date
            write_session.add(rego_group)
            listed.append(rego_group)

        write_session.flush()
        result = [RegoGroupRead.model_validate(group) for group in listed]

    logger.info(f"Provider {provider_id} listed {len(result)} REGO groups for sale")
    return result


def query_rego_groups(
    query: RegoGroupQuery, read_session: Session
) -> list[RegoGroupMarketRead]:
    stmt = (
        select(RegoGroup, Provider.account_name, Plant.plant_name, Plant.energy_source)
        .join(Provider, Provider.id == RegoGroup.provider_id)  # type: ignore
        .join(Plant, Plant.id == RegoGroup.plant_id)  # type: ignore
    )

    if query.status is not None:
        stmt = stmt.where(RegoGroup.status == query.status)
    if query.trading_status is not None:
        stmt = stmt.where(RegoGroup.trading_status == query.trading_status)
    if query.plant_name:
        stmt = stmt.where(Plant.plant_name.contains(query.plant_name))  # type: ignore
    if query.electricity_production_period:
        stmt = stmt.where(
            RegoGroup.electricity_production_period == query.electricity_production_period
        )
    if query.provider_id is not None:
        stmt = stmt.where(RegoGroup.provider_id == query.provider_id)

    stmt = stmt.order_by(
        RegoGroup.electricity_production_period.desc(),  # type: ignore
        RegoGroup.id.desc(),  # type: ignore
    )

    return [
        RegoGroupMarketRead.model_validate(
            {
                **RegoGroupRead.model_validate(rego_group).model_dump(),
                "account_name": account_name,
                "plant_name": plant_name,
                "energy_source": energy_source,
            }
        )
        for rego_group, account_name, plant_name, energy_source in read_session.exec(stmt)
    ]


def get_units_by_rego_group_id(rego_group_id: int, read_session: Session) -> list[Rego]:
    stmt: SelectOfScalar = (
        select(Rego)
        .where(Rego.rego_group_id == rego_group_id)
        .order_by(Rego.sequence_number)  # type: ignore
    )
    return list(read_session.exec(stmt).all())


def get_rego_group_units(
    provider_id: int, rego_group_id: int, read_session: Session
) -> list[RegoRead]:
    """The unit ledger of one of the provider's REGO groups, in sequence order.

    Raises:
        NotFoundError: If the group does not exist.
        AuthorizationError: If the group is not owned by the provider.
    """
    rego_group = RegoGroup.by_id(rego_group_id, read_session)
    validate_rego_group_owner(rego_group, provider_id)

    return [
        RegoRead.model_validate(unit)
        for unit in get_units_by_rego_group_id(rego_group_id, read_session)
    ]


def expire_rego_groups(
    write_session: Session, as_of: datetime.datetime | None = None
) -> int:
    """Expire active REGO groups past their expiry date.

    Expired groups leave the market, and any trade still pending against them is
    rejected because it can no longer be approved.

    Returns:
        int: The number of groups expired.
    """
    as_of = as_of or utc_datetime_now()

    with db.transaction(write_session):
        rego_groups = write_session.exec(
            select(RegoGroup)
            .where(
                RegoGroup.status == RegoStatus.ACTIVE,
                RegoGroup.expired_date <= as_of,
            )
            .order_by(RegoGroup.id)  # type: ignore
            .with_for_update()
        ).all()

        for rego_group in rego_groups:
            transition_rego_group(rego_group, RegoStatus.EXPIRED, RegoTradingStatus.END)
            write_session.add(rego_group)

            pending_trades = write_session.exec(
                select(RegoTradeInfo)
                .where(
                    RegoTradeInfo.rego_group_id == rego_group.id,
                    RegoTradeInfo.trading_application_status
                    == TradingApplicationStatus.PENDING,
                )
                .with_for_update()
            ).all()
            for trade in pending_trades:
                trade.trading_application_status = TradingApplicationStatus.REJECTED
                trade.rejected_reason = EXPIRED_TRADE_REASON
                trade.trade_completed_date = as_of
                write_session.add(trade)

        expired_count = len(rego_groups)

    logger.info(f"Expired {expired_count} REGO groups as of {as_of.isoformat()}")
    return expired_count
