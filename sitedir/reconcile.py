"""Check (and optionally repair) index drift: python -m sitedir.reconcile [--repair]"""
import argparse
import logging
import sys

from sitedir.config import settings
from sitedir.db.connection import ensure_schema
from sitedir.repositories.entity_repository import EntityRepository
from sitedir.repositories.index_manager import IndexManager
from sitedir.repositories.kv_store import SITES_NAMESPACE, SUBMISSIONS_NAMESPACE, SqliteKeyValueStore
from sitedir.services.reconcile_service import IndexReconciler


def build_reconciler(db_path: str) -> IndexReconciler:
    submissions_store = SqliteKeyValueStore(db_path, SUBMISSIONS_NAMESPACE)
    sites_store = SqliteKeyValueStore(db_path, SITES_NAMESPACE)
    return IndexReconciler(
        EntityRepository(submissions_store, sites_store),
        IndexManager(submissions_store),
        IndexManager(sites_store),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--db-path", default=settings.DB_PATH)
    parser.add_argument("--repair", action="store_true", help="rewrite indices from entities")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ensure_schema(args.db_path)
    reconciler = build_reconciler(args.db_path)
    report = reconciler.repair() if args.repair else reconciler.check()

    for issue in report.issues:
        print(issue)
    print(
        f"checked {report.submissions_checked} submissions, {report.sites_checked} sites: "
        f"{len(report.issues)} issue(s){' repaired' if args.repair and report.issues else ''}"
    )
    return 1 if report.issues and not args.repair else 0


if __name__ == "__main__":
    sys.exit(main())
