from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the integrity error is a unique/primary key collision.

    PostgreSQL drivers expose the SQLSTATE (``sqlstate`` on psycopg 3,
    ``pgcode`` on psycopg2); SQLite only reports it in the message.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    return "UNIQUE constraint failed" in str(orig)
