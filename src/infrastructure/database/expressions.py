"""
Portable SQL Expressions
========================

SQL constructs whose rendering differs between PostgreSQL and SQLite.
"""

from sqlalchemy import Float
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement


class epoch_seconds(FunctionElement):
    """
    Seconds since the Unix epoch for a timestamp expression.

    Lets duration arithmetic (``epoch(b) - epoch(a)``) compile to a plain
    number on every supported dialect.
    """
    type = Float()
    name = "epoch_seconds"
    inherit_cache = True


@compiles(epoch_seconds)
def _epoch_seconds_default(element, compiler, **kw):
    return "EXTRACT(EPOCH FROM %s)" % compiler.process(element.clauses, **kw)


@compiles(epoch_seconds, "sqlite")
def _epoch_seconds_sqlite(element, compiler, **kw):
    # julianday() of 1970-01-01T00:00:00Z is 2440587.5
    return "((julianday(%s) - 2440587.5) * 86400.0)" % compiler.process(element.clauses, **kw)
