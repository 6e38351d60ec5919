"""
API key administration.

    python -m sosha_verifier.keys create "Bole Branch Till"
    python -m sosha_verifier.keys deactivate "Bole Branch Till"
    python -m sosha_verifier.keys list
"""
import argparse
import logging
import secrets
import sys
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from sosha_verifier.database import Base, SessionLocal
from sosha_verifier.models import ApiKeyModel

logger = logging.getLogger(__name__)


def create_key(db: Session, name: str) -> ApiKeyModel:
    record = ApiKeyModel(
        id=str(uuid.uuid4()),
        name=name,
        key=secrets.token_urlsafe(32),
        is_active=True,
    )
    db.add(record)
    db.commit()
    logger.info("Issued API key %s for %s", record.id, name)
    return record


def deactivate_keys(db: Session, name: str) -> int:
    """Deactivate every active key issued under *name*; returns how many changed."""
    records = (
        db.query(ApiKeyModel)
        .filter(ApiKeyModel.name == name, ApiKeyModel.is_active == True)  # noqa: E712
        .all()
    )
    for record in records:
        record.is_active = False
    db.commit()
    logger.info("Deactivated %d key(s) for %s", len(records), name)
    return len(records)


def list_keys(db: Session) -> List[ApiKeyModel]:
    return db.query(ApiKeyModel).order_by(ApiKeyModel.created_at).all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m sosha_verifier.keys",
        description="Issue, revoke and list Sosha Verifier API keys",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Issue a new key and print it once")
    create.add_argument("name", help="Who the key is issued to (recorded as verified_by)")

    deactivate = commands.add_parser("deactivate", help="Deactivate every key issued under a name")
    deactivate.add_argument("name")

    commands.add_parser("list", help="List key holders and whether their keys are active")
    return parser


def main(argv: Optional[List[str]] = None, session_factory=SessionLocal) -> int:
    args = build_parser().parse_args(argv)

    db = session_factory()
    try:
        Base.metadata.create_all(bind=db.get_bind())

        if args.command == "create":
            record = create_key(db, args.name)
            print(record.key)
            return 0

        if args.command == "deactivate":
            if deactivate_keys(db, args.name) == 0:
                print(f"No active keys for {args.name}", file=sys.stderr)
                return 1
            return 0

        for record in list_keys(db):
            status = "active" if record.is_active else "inactive"
            print(f"{record.id}  {record.name}  {status}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
    )
    sys.exit(main())
