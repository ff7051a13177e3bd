from .sqlite_backend import SQLiteBackend


def get_storage_backend(db_type="sqlite", **kwargs):
    if db_type == "sqlite":
        return SQLiteBackend(**kwargs)
    else:
        raise ValueError(f"Unsupported DB type: {db_type}")
