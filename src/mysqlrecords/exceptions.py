"""
Database-specific exception classes.
"""
import pymysql


class DatabaseError(Exception):
    """Base class for all database module errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing or maintaining database connection.
    """


class QueryError(DatabaseError):
    """Error in query syntax, execution or cursor usage.
    """


class TypeConversionError(DatabaseError):
    """Error converting a database value into its scan target.
    """


class ColumnMismatchError(TypeConversionError):
    """Number of scan targets does not match the number of row values.
    """


class IntegrityViolationError(DatabaseError):
    """Database constraint violation error.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class NoResultError(DatabaseError):
    """A single-row lookup matched zero rows.
    """


DbConnectionError = (
    pymysql.err.OperationalError,
    pymysql.err.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    pymysql.err.IntegrityError,
    IntegrityViolationError,
    )

ProgrammingError = (
    pymysql.err.ProgrammingError,
    pymysql.err.DataError,
    QueryError,
    )

OperationalError = (
    pymysql.err.OperationalError,
    pymysql.err.InternalError,
    )
