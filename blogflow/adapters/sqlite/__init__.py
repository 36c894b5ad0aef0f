from blogflow.adapters.sqlite.db import SQLiteDatabase
from blogflow.adapters.sqlite.migrator import SQLiteMigrator
from blogflow.adapters.sqlite.repos import SQLiteActivityRepo, SQLiteContentRepo, SQLiteTokenStore

__all__ = [
    "SQLiteActivityRepo",
    "SQLiteContentRepo",
    "SQLiteDatabase",
    "SQLiteMigrator",
    "SQLiteTokenStore",
]
