#!/usr/bin/env python
"""
Seed the registry with the public stakeholder accounts and, optionally, demo data.

Usage:
  python -m rego_registry.seed [--create-tables] [--demo]

Arguments:
  --create-tables  Create every table before seeding.
  --demo           Also create a demo power business with a plant, a consumer and
                   one generation record ready for issuance.
"""

import argparse
from decimal import Decimal

from sqlmodel import Session

from rego_registry.authentication.services import (
    sign_up_consumer,
    sign_up_provider,
)
from rego_registry.consumer.models import Consumer
from rego_registry.consumer.schemas import ConsumerSignUp
from rego_registry.core.database import db
from rego_registry.core.models.base import AccountType, IssuedStatus, Region
from rego_registry.logging_config import logger
from rego_registry.plant.models import Plant
from rego_registry.plant.services import compute_supply_percentages
from rego_registry.power_generation.models import PowerGeneration
from rego_registry.provider.models import Provider
from rego_registry.provider.schemas import ProviderSignUp

DEFAULT_PASSWORD = "change_me_now"


def seed_public_stakeholders(write_session: Session) -> list[Provider]:
    """Create the nation account and one local government account per region.
    Accounts that already exist are left alone."""
    created = []

    if Provider.nation(write_session) is None:
        sign_up_provider(
            ProviderSignUp(
                login_id="nation",
                password=DEFAULT_PASSWORD,
                account_name="Nation",
                account_type=AccountType.NATION,
            ),
            write_session,
        )
        created.append(Provider.nation(write_session))

    for region in Region:
        if Provider.local_government(region, write_session) is not None:
            continue
        sign_up_provider(
            ProviderSignUp(
                login_id=f"local_government_{region.value}",
                password=DEFAULT_PASSWORD,
                account_name=f"{region.label} local government",
                account_type=AccountType.LOCAL_GOVERNMENT,
                region=region,
            ),
            write_session,
        )
        created.append(Provider.local_government(region, write_session))

    logger.info(f"Seeded {len(created)} public stakeholder accounts")
    return created  # type: ignore


def seed_demo_data(write_session: Session) -> None:
    if Provider.by_login_id("demo_provider", write_session) is not None:
        logger.info("Demo data already present, skipping")
        return

    provider = sign_up_provider(
        ProviderSignUp(
            login_id="demo_provider",
            password=DEFAULT_PASSWORD,
            account_name="Demo Solar Co",
        ),
        write_session,
    )

    if Consumer.by_login_id("demo_consumer", write_session) is None:
        sign_up_consumer(
            ConsumerSignUp(
                login_id="demo_consumer",
                password=DEFAULT_PASSWORD,
                account_name="Demo Buyer",
                corporation_name="Demo Buyer Corp",
            ),
            write_session,
        )

    prices = (Decimal("60"), Decimal("30"), Decimal("10"))
    self_percent, nation_percent, local_percent = compute_supply_percentages(*prices)

    with db.transaction(write_session):
        plant = Plant.create(
            {
                "provider_id": provider.id,
                "plant_code": "DEMO",
                "plant_name": "Demo solar plant",
                "energy_source": "solar",
                "region": Region.JEJU,
                "self_supply_price": prices[0],
                "nation_supply_price": prices[1],
                "local_government_supply_price": prices[2],
                "self_supply_price_percent": self_percent,
                "nation_supply_price_percent": nation_percent,
                "local_government_supply_price_percent": local_percent,
            },
            write_session,
        )[0]
        PowerGeneration.create(
            {
                "plant_id": plant.id,
                "electricity_production_period": "2024-01",
                "power_generation_amount": Decimal("100.555"),
                "issued_status": IssuedStatus.NO,
            },
            write_session,
        )

    logger.info("Seeded demo provider, consumer, plant and generation record")


def main():
    parser = argparse.ArgumentParser(description="Seed the REGO registry")
    parser.add_argument("--create-tables", action="store_true", help="Create all tables first.")
    parser.add_argument("--demo", action="store_true", help="Also seed demo data.")

    args = parser.parse_args()

    db_client = db.get_db_name_to_client()["db_write"]
    if args.create_tables:
        db_client.create_db_and_tables()
        logger.info("Created database tables")

    with db_client.get_session() as write_session:
        seed_public_stakeholders(write_session)
        if args.demo:
            seed_demo_data(write_session)

    logger.info("Seeding complete!")


if __name__ == "__main__":
    main()
