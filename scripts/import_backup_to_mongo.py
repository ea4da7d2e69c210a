#!/usr/bin/env python3
"""
Copiar os alunos guardados pelo backend em memoria (students-backup.json) para o MongoDB.

Uso:
  MONGODB_URL=mongodb://... python scripts/import_backup_to_mongo.py [--file students-backup.json]
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Garantir que o pacote school_api seja importável quando rodado diretamente
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from school_api.core.config import get_settings
from school_api.db.session import connection_from_settings
from school_api.repositories import LoadStatus, MongoStorage, StudentBackup


async def migrate(backup_path: Path) -> int:
    settings = get_settings()
    result = StudentBackup(backup_path).load()
    if result.status is LoadStatus.FAILED:
        raise SystemExit(f"Backup ilegivel: {backup_path} ({result.error})")

    store = MongoStorage(connection_from_settings(settings), id_strategy=settings.mongodb_id_strategy)
    try:
        return await store.import_students(result.students)
    finally:
        await store.close()


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Importar backup JSON de alunos no MongoDB")
    ap.add_argument("--file", default=settings.students_backup_file, help="Arquivo de backup (default: STUDENTS_BACKUP_FILE)")
    args = ap.parse_args()

    count = asyncio.run(migrate(Path(args.file)))
    print(f"OK: {count} alunos importados para {settings.mongodb_database}")


if __name__ == "__main__":
    main()
