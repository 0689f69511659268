"""HTTP client for distributed transactions: SAGA, TCC, XA, reliable messages and barriers."""

__version__ = "0.1.0"

__all__ = [
    "barrier",
    "consts",
    "db_special",
    "logger",
    "msg",
    "rest",
    "saga",
    "tcc",
    "trans_base",
    "utils",
    "xa",
    "xa_base",
]