#!/usr/bin/env python3
"""
레거시 news / events / resources 테이블을 통합 포스트로 이전

    python scripts/migrate_to_posts.py --dry-run
    python scripts/migrate_to_posts.py --only news

레코드마다 별도 트랜잭션이므로 실패한 레코드는 건너뛰고 계속 진행합니다.
"""
import argparse
import asyncio
import logging
import os
import sys

# backend 디렉터리를 Python 경로에 추가
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from chamber.core.constants import POST_TYPES
from chamber.database.session import AsyncSessionLocal, close_db
from chamber.services.migration import migrate_legacy_content

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("migrate_to_posts")

# dry-run 에서 보여줄 예시 개수
DRY_RUN_PREVIEW = 3


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate legacy content into unified posts")
    parser.add_argument("--dry-run", action="store_true", help="쓰기 없이 이전 대상만 출력")
    parser.add_argument(
        "--only",
        choices=POST_TYPES,
        action="append",
        help="지정한 타입만 이전 (여러 번 지정 가능)",
    )
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    post_types = tuple(args.only) if args.only else POST_TYPES

    logger.info(f"Starting migration (dry_run={args.dry_run}, types={', '.join(post_types)})")
    try:
        reports = await migrate_legacy_content(AsyncSessionLocal, dry_run=args.dry_run, post_types=post_types)
    finally:
        await close_db()

    failed = 0
    for report in reports.values():
        print(report.summary())
        for title, slug in report.planned[:DRY_RUN_PREVIEW]:
            print(f"  - {title} (slug: {slug})")
        failed += report.failed

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
