#!/usr/bin/env python3
"""
Initialize database tables and seed the bootstrap accounts.

Creates every table, the protocol treasury and the root account that owns
the root referral code. An admin account is created when ADMIN_EMAIL and
ADMIN_PASSWORD are set.

Environment:
    DATABASE_URL: Target database (defaults to settings)
    ROOT_EMAIL, ROOT_PASSWORD: Root account credentials (required)
    ROOT_USERNAME: Root username (default "optivus")
    ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME: Optional admin account
"""

import asyncio
import os
import sys

from loguru import logger

from optivus.config.settings import settings
from optivus.services.account import AccountService
from optivus.utils.database import create_engine, create_session_maker, init_models
from optivus.utils.exceptions import OptivusError
from optivus.utils.logging import setup_logging


async def init_database() -> None:
    """Create tables, treasury, root and optional admin."""
    setup_logging(level="INFO", log_file="")

    root_email = os.environ.get("ROOT_EMAIL")
    root_password = os.environ.get("ROOT_PASSWORD")
    if not root_email or not root_password:
        logger.error("ROOT_EMAIL and ROOT_PASSWORD must be set")
        sys.exit(1)

    logger.info("Connecting to database...")
    engine = create_engine(os.environ.get("DATABASE_URL") or settings.database_url)

    logger.info("Creating tables...")
    await init_models(engine)

    session_maker = create_session_maker(engine)
    async with session_maker() as session:
        service = AccountService(session)

        treasury = await service.account_repo.get_or_create_treasury()
        await session.commit()
        logger.info(f"Treasury account ready (id={treasury.id})")

        root = await service.bootstrap_root(
            first_name="Optivus",
            last_name="Root",
            username=os.environ.get("ROOT_USERNAME", "optivus"),
            email=root_email,
            password=root_password,
        )
        logger.info(
            f"Root account ready (id={root.id}, referral_code={root.referral_code})"
        )

        admin_email = os.environ.get("ADMIN_EMAIL")
        admin_password = os.environ.get("ADMIN_PASSWORD")
        if admin_email and admin_password:
            try:
                admin = await service.create_admin(
                    first_name="Platform",
                    last_name="Admin",
                    username=os.environ.get("ADMIN_USERNAME", "admin"),
                    email=admin_email,
                    password=admin_password,
                )
                logger.info(f"Admin account created (id={admin.id})")
            except OptivusError as e:
                logger.warning(f"Admin account not created: {e.message}")

    await engine.dispose()
    logger.success("Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
