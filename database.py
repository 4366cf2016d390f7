from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def one_of(column, values):
    """SQL check clause restricting ``column`` to a fixed set of strings."""
    return f"{column} IN (" + ", ".join(f"'{value}'" for value in values) + ")"
