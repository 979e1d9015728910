#!/usr/bin/env python3
"""
기존 사용자에게 레거시 정보(role, membership_level) 기반 멤버십 부여

    python scripts/migrate_user_memberships.py

이미 활성 멤버십이 있는 사용자는 건너뜁니다. seed_acl.py 를 먼저 실행하세요.
"""
import asyncio
import logging
import os
import sys

# backend 디렉터리를 Python 경로에 추가
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from chamber.database.session import AsyncSessionLocal, close_db
from chamber.services.migration import migrate_user_memberships

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("migrate_user_memberships")


async def main() -> int:
    logger.info("Migrating existing users to membership system...")
    try:
        async with AsyncSessionLocal() as db:
            try:
                report = await migrate_user_memberships(db)
                await db.commit()
            except Exception:
                await db.rollback()
                logger.exception("Membership migration failed")
                return 1
    finally:
        await close_db()

    print("Migration completed:")
    print(f"   - Migrated: {report.migrated} users")
    print(f"   - Skipped: {report.skipped} users")
    if report.failed:
        print(f"   - Failed: {report.failed} users")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
