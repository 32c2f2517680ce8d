"""Time-limited editing of records.

A record may be edited only within ``timeout_minutes`` after its creation
time. Anything that prevents us from knowing the creation time is logged and
treated as "edit allowed".
"""
import logging
import time
from collections.abc import Mapping
from datetime import date, datetime, timezone

DEFAULT_DENIED_MESSAGE = "Sorry - edit timeout has expired. Editing is not possible."

log = logging.getLogger(__name__)


class EditWindowError(ValueError):
    """Base class for problems reading a record's creation time."""


class MissingAttributeError(EditWindowError):
    def __init__(self, attribute, record_type):
        self.attribute = attribute
        self.record_type = record_type
        super().__init__(f"attribute {attribute!r} does not exist on {record_type}")


class UnparseableTimestampError(EditWindowError):
    def __init__(self, value, record_type=None):
        self.value = value
        self.record_type = record_type
        where = f" on {record_type}" if record_type else ''
        super().__init__(f"cannot parse timestamp {value!r}{where}")


class AttributeRecord:
    """Expose a plain object's attributes as record fields."""

    def __init__(self, obj):
        self.obj = obj

    def has_field(self, name: str) -> bool:
        return hasattr(self.obj, name)

    def get_field(self, name: str):
        return getattr(self.obj, name)


class MappingRecord:
    def __init__(self, data: Mapping):
        self.data = data

    def has_field(self, name: str) -> bool:
        return name in self.data

    def get_field(self, name: str):
        return self.data[name]


def as_record(obj):
    """Return something with ``has_field``/``get_field`` for obj."""
    if hasattr(obj, 'has_field') and hasattr(obj, 'get_field'):
        return obj
    if isinstance(obj, Mapping):
        return MappingRecord(obj)
    return AttributeRecord(obj)


def record_type_name(obj) -> str:
    if isinstance(obj, AttributeRecord):
        obj = obj.obj
    return type(obj).__name__


def parse_timestamp(value) -> int:
    """Convert a creation-time value to epoch seconds.

    Integers are returned untouched. Datetimes, dates and ISO 8601 strings
    are converted; naive values are taken to be UTC. Strings of the form
    ``@<epoch>`` are accepted as well.
    """
    if isinstance(value, bool):
        raise UnparseableTimestampError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        return _datetime_to_epoch(value)
    if isinstance(value, date):
        return _datetime_to_epoch(datetime(value.year, value.month, value.day))
    if isinstance(value, str):
        text = value.strip()
        if text.startswith('@'):
            try:
                return int(text[1:])
            except ValueError:
                raise UnparseableTimestampError(value) from None
        try:
            return _datetime_to_epoch(datetime.fromisoformat(text))
        except ValueError:
            raise UnparseableTimestampError(value) from None
    raise UnparseableTimestampError(value)


def _datetime_to_epoch(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


class EditWindowPolicy:
    """Allow edits only for ``timeout_minutes`` after a record was created."""

    def __init__(self, timeout_minutes: int = 60, denied_message: str = None,
                 created_at_attribute: str = 'created_on', logging_enabled: bool = True,
                 logger=None, clock=time.time):
        if isinstance(timeout_minutes, bool) or not isinstance(timeout_minutes, int) or timeout_minutes < 1:
            raise ValueError(f'timeout_minutes must be a positive integer, got {timeout_minutes!r}')
        if not created_at_attribute:
            raise ValueError('created_at_attribute must be a non-empty string')
        self.timeout_minutes = timeout_minutes
        self.denied_message = denied_message
        self.created_at_attribute = created_at_attribute
        self.logging_enabled = logging_enabled
        self.logger = logger or log
        self.clock = clock

    @classmethod
    def from_config(cls, config: Mapping, logger=None, **kwargs):
        """Build a policy from a Flask-style config mapping.

        Keyword arguments override individual settings, e.g. a model with its
        own timeout that still follows the app's logging config.
        """
        logging_flag = config.get('EDIT_WINDOW_LOGGING', True)
        if isinstance(logging_flag, str):
            logging_flag = logging_flag.lower() == 'true'
        settings = dict(
            timeout_minutes=int(config.get('EDIT_TIMEOUT_MINUTES', 60)),
            denied_message=config.get('EDIT_DENIED_MESSAGE') or None,
            created_at_attribute=config.get('EDIT_CREATED_ATTRIBUTE', 'created_on'),
            logging_enabled=bool(logging_flag),
            logger=logger,
        )
        # keyword arguments win over the config values
        settings.update(kwargs)
        return cls(**settings)

    @property
    def timeout_seconds(self) -> int:
        return self.timeout_minutes * 60

    @property
    def message(self) -> str:
        return self.denied_message or DEFAULT_DENIED_MESSAGE

    def created_at_timestamp(self, record) -> int:
        """Return the record's creation time in epoch seconds.

        Raises MissingAttributeError or UnparseableTimestampError.
        """
        fields = as_record(record)
        try:
            if not fields.has_field(self.created_at_attribute):
                raise MissingAttributeError(self.created_at_attribute, record_type_name(record))
            value = fields.get_field(self.created_at_attribute)
        except MissingAttributeError:
            raise
        except Exception as e:
            # e.g. DetachedInstanceError from an expired, detached model
            raise MissingAttributeError(self.created_at_attribute, record_type_name(record)) from e
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        try:
            return parse_timestamp(value)
        except UnparseableTimestampError:
            raise UnparseableTimestampError(value, record_type_name(record)) from None

    def deadline(self, record) -> int:
        return self.created_at_timestamp(record) + self.timeout_seconds

    def _checked_deadline(self, record):
        try:
            return self.deadline(record)
        except MissingAttributeError as e:
            self._log_error('%s is not a valid created-on attribute: it does not exist in the '
                            'given model (of class=%s). Cannot check edit window, allowing edit.',
                            e.attribute, e.record_type)
        except UnparseableTimestampError as e:
            self._log_error('created-on value (%r) is invalid in the model being checked '
                            '(type=%s). Cannot check edit window, allowing edit.',
                            e.value, e.record_type)
        return None

    def _log_error(self, msg, *args):
        if self.logging_enabled:
            self.logger.log(logging.ERROR, msg, *args)

    def validate(self, record) -> bool:
        """True when the record's creation time can be determined."""
        return self._checked_deadline(record) is not None

    def is_edit_allowed(self, record) -> bool:
        deadline = self._checked_deadline(record)
        if deadline is None:
            return True
        return deadline >= int(self.clock())

    def seconds_remaining(self, record):
        """Seconds left in the edit window, 0 once expired, None if unknown."""
        deadline = self._checked_deadline(record)
        if deadline is None:
            return None
        return max(0, deadline - int(self.clock()))

    def status(self, record) -> dict:
        """Return ``editable`` and ``seconds_remaining`` from a single check."""
        deadline = self._checked_deadline(record)
        if deadline is None:
            return {'editable': True, 'seconds_remaining': None}
        now = int(self.clock())
        return {'editable': deadline >= now, 'seconds_remaining': max(0, deadline - now)}

    def enforce(self, record, notify) -> None:
        """Call ``notify(message)`` once if the edit window has passed."""
        deadline = self._checked_deadline(record)
        if deadline is None:
            return
        if deadline < int(self.clock()):
            notify(self.message)

    def __repr__(self):
        return (f"<EditWindowPolicy {self.created_at_attribute}+{self.timeout_minutes}m "
                f"logging={self.logging_enabled}>")
