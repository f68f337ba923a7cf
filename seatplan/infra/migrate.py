from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"


def run_upgrade_head() -> None:
    config = Config(str(ALEMBIC_INI))
    command.upgrade(config, "head")


if __name__ == "__main__":
    run_upgrade_head()
