"""Declarative bases shared by every Scenes model.

Entities carry integer ids and audit timestamps; lookup and configuration
rows only carry an integer id.
"""

from advanced_alchemy.base import BigIntAuditBase, BigIntBase


class Base(BigIntAuditBase):
    __abstract__ = True


class ConfigBase(BigIntBase):
    __abstract__ = True


__all__ = ["Base", "ConfigBase"]
