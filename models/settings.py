from extensions import db
from datetime import datetime, timezone


def _parse_bool(raw):
    return raw.strip().lower() in ('true', '1', 'yes', 'on')


# setting_type -> (to_python, to_text)
CONVERTERS = {
    'boolean': (_parse_bool, lambda v: 'true' if v else 'false'),
    'int': (int, str),
    'string': (str, str),
}


def _type_of(value):
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, int):
        return 'int'
    return 'string'


class Settings(db.Model):
    """Platform-wide key/value configuration edited by admins.

    Values are stored as text alongside the type they were written with, so
    ``get_value`` hands back the same Python type ``set_value`` received.
    """
    __tablename__ = 'settings'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), nullable=False, unique=True)
    value = db.Column(db.String(500))
    description = db.Column(db.String(255))
    setting_type = db.Column(db.String(50))  # one of CONVERTERS
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None),
                           onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    @property
    def typed_value(self):
        if self.value is None:
            return None
        to_python, _ = CONVERTERS.get(self.setting_type or 'string', CONVERTERS['string'])
        return to_python(self.value)

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.query.filter_by(key=key).first()
        if setting is None or setting.value is None:
            return default
        return setting.typed_value

    @classmethod
    def set_value(cls, key, value, description=None):
        """Upsert ``key``; the type is taken from ``value``. Caller commits."""
        setting_type = _type_of(value)
        _, to_text = CONVERTERS[setting_type]
        setting = cls.query.filter_by(key=key).first()
        if setting is None:
            setting = cls(key=key)
            db.session.add(setting)
        setting.value = to_text(value)
        setting.setting_type = setting_type
        if description:
            setting.description = description
        return setting

    def __repr__(self):
        return f'<Settings {self.key}={self.value!r}>'
