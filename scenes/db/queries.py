"""Column sets for joined queries that return flat rows."""

from sqlalchemy.engine import Result

from scenes.db.models import Asset, Collection


def asset_columns() -> tuple:
    return (
        Asset.id,
        Asset.filename,
        Asset.filepath,
        Asset.filetype,
        Asset.filesize,
        Asset.checksum,
        Asset.created_at,
        Asset.updated_at,
    )


def collection_columns(description_label: str = "description") -> tuple:
    return (
        Collection.id,
        Collection.slug,
        Collection.name,
        Collection.title,
        Collection.description.label(description_label),
        Collection.protected,
        Collection.created_at,
        Collection.updated_at,
    )


def rows_as_dicts(result: Result) -> list[dict]:
    return [dict(row) for row in result.mappings().all()]
