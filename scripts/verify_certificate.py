"""
Certificate check — validate a verification hash against the database.

Same answer as the public GET /verify/{hash} endpoint, without the API.
Exit code 0 when the certificate is valid, 1 otherwise.
"""
import os
import sys
import json
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import sessionmaker

from src.api.dependencies import build_services
from src.config.settings import get_settings
from src.infrastructure.db.database import create_db_engine


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Validate a certificate verification hash")
    parser.add_argument("hash", help="64-char SHA-256 verification hash")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    args = parser.parse_args(argv)

    settings = get_settings()
    engine = create_db_engine(args.database_url or settings.database_url)
    services = build_services(settings, session_factory=sessionmaker(bind=engine, expire_on_commit=False))

    result = services.issuer.verify_by_hash(args.hash)

    if args.json:
        print(json.dumps(result.to_dict(), default=str, indent=2))
    elif result.valid:
        cert = result.certificate
        print(f"VALID  {cert['certificate_number']}")
        print(f"  Owner:      {cert['owner_name']}")
        print(f"  Issued:     {cert['issued_at']:%Y-%m-%d}")
        print(f"  Expires:    {cert['expires_at']:%Y-%m-%d}")
    else:
        print(f"INVALID  {result.reason}")
        if result.revoked_at:
            print(f"  Revoked:    {result.revoked_at:%Y-%m-%d} ({result.revoked_reason})")

    return 0 if result.valid else 1


if __name__ == "__main__":
    sys.exit(main())
