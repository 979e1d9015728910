#!/usr/bin/env python3
"""
접근 제어 카탈로그(등급, 역할, 권한, 역할별 권한) 시드

    python scripts/seed_acl.py

여러 번 실행해도 결과가 같습니다.
"""
import asyncio
import logging
import os
import sys

# backend 디렉터리를 Python 경로에 추가
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from chamber.database.session import AsyncSessionLocal, close_db
from chamber.services.acl_seed import seed_acl

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("seed_acl")


async def main() -> int:
    logger.info("Seeding ACL catalog...")
    async with AsyncSessionLocal() as db:
        try:
            report = await seed_acl(db)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("ACL seeding failed")
            return 1

    logger.info(
        f"ACL seeding completed: {report.tiers} tiers, {report.roles} roles, "
        f"{report.permissions} permissions"
    )
    for role_code, count in report.role_permissions.items():
        logger.info(f"  - {role_code}: {count} permissions")
    return 0


async def run() -> int:
    try:
        return await main()
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
