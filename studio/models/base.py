"""
Base model with common fields and methods
"""
from datetime import date, datetime, timezone
from decimal import Decimal

from studio import db


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_camel(name):
    """snake_case column name -> camelCase JSON key"""
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def serialize_value(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class BaseModel(db.Model):
    """Abstract base model with common fields"""
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self, exclude=None):
        """
        Convert model to dictionary

        Args:
            exclude (list): List of column names to exclude

        Returns:
            dict: Model as dictionary with camelCase keys
        """
        exclude = exclude or []
        data = {}

        for prop in self.__mapper__.column_attrs:
            if prop.key in exclude:
                continue
            data[to_camel(prop.key)] = serialize_value(getattr(self, prop.key))

        return data

    def update_from(self, data, fields):
        """
        Copy whitelisted fields from a request payload onto the model.

        Args:
            data (dict): Payload keyed by camelCase or snake_case names
            fields (iterable): snake_case attribute names that may be set

        Returns:
            list: Names of attributes that changed
        """
        changed = []
        for field in fields:
            camel = to_camel(field)
            if camel in data:
                value = data[camel]
            elif field in data:
                value = data[field]
            else:
                continue
            if getattr(self, field) != value:
                setattr(self, field, value)
                changed.append(field)
        return changed
