# Author: Eric Kow
# License: BSD3

"""
Attribute values: type checks and codecs.

An attribute type may declare the Python class its values should be
instances of (see `strata.types.AttributeType`). Setting a value of
the wrong class is an error unless type checking has been switched
off, either globally (`set_type_checking`) or for a single call.

Codecs translate attribute values to and from JSON-friendly values
for serialisation. Codecs are looked up by

1. the codec attached to the attribute type itself, if any
2. the codec registered for its declared value type (or the nearest
   registered base class, which is how enumerations are handled)
3. otherwise values are passed through as they are
"""

import datetime
from collections import namedtuple
from enum import Enum

from .language import Language


class AttributeValueError(ValueError):
    """
    Value of the wrong type for an attribute
    """
    def __init__(self, attribute, value):
        msg = ('%r [%s] is of wrong type. %s\'s defined type is %s' %
               (value, type(value).__name__, attribute.name,
                attribute.value_type.__name__))
        super(AttributeValueError, self).__init__(msg)
        self.attribute = attribute
        self.value = value


Codec = namedtuple('Codec', 'encode decode')
"""
A pair of functions to encode a value into something JSON can
represent, and to decode it back. Decoders are given the declared
value type as a second argument (useful for enumerations).
"""

_TYPE_CHECKING = [True]


def set_type_checking(enabled):
    """
    Turn attribute type checks on or off process-wide
    """
    _TYPE_CHECKING[0] = bool(enabled)


def is_type_checking():
    "True if attribute type checks are enabled"
    return _TYPE_CHECKING[0]


def check_value(attribute, value, type_check=True):
    """
    Raise an `AttributeValueError` if the value is not suitable for
    the attribute. `None` always is (it means "unset").
    """
    if value is None or not type_check or not is_type_checking():
        return
    vtype = attribute.value_type
    if vtype is None:
        return
    # bool is an int, but we don't want True sneaking in as an INDEX
    if isinstance(value, bool) and vtype is not bool:
        raise AttributeValueError(attribute, value)
    if vtype is float and isinstance(value, int):
        return
    if not isinstance(value, vtype):
        raise AttributeValueError(attribute, value)


# ---------------------------------------------------------------------
# codecs
# ---------------------------------------------------------------------

def _identity(value, _vtype=None):
    return value


def _decode_enum(value, vtype):
    return vtype[value]


def _encode_date(value):
    return value.isoformat()


def _decode_date(value, _vtype):
    return datetime.date.fromisoformat(value)


def _decode_datetime(value, _vtype):
    return datetime.datetime.fromisoformat(value)


STRING = Codec(str, lambda v, _: str(v))
INTEGER = Codec(int, lambda v, _: int(v))
FLOAT = Codec(float, lambda v, _: float(v))
BOOLEAN = Codec(bool, lambda v, _: bool(v))
DATE = Codec(_encode_date, _decode_date)
DATETIME = Codec(_encode_date, _decode_datetime)
ENUM = Codec(lambda v: v.name, _decode_enum)
LANGUAGE = Codec(lambda v: v.code, lambda v, _: Language.from_code(v))
PASS_THROUGH = Codec(_identity, _identity)

_CODECS = {
    str: STRING,
    int: INTEGER,
    float: FLOAT,
    bool: BOOLEAN,
    datetime.datetime: DATETIME,
    datetime.date: DATE,
    Language: LANGUAGE,
    Enum: ENUM,
}


def register_codec(value_type, codec):
    """
    Use the given codec for all attributes declaring this value type
    (or a subclass of it) and no codec of their own
    """
    _CODECS[value_type] = codec


def codec_for(attribute):
    """
    Codec to use for the values of this attribute type
    """
    if attribute.codec is not None:
        return attribute.codec
    vtype = attribute.value_type
    if vtype is None:
        return PASS_THROUGH
    for klass in vtype.__mro__:
        if klass in _CODECS:
            return _CODECS[klass]
    return PASS_THROUGH


def encode_value(attribute, value):
    """
    JSON-friendly representation of an attribute value
    """
    if value is None:
        return None
    return codec_for(attribute).encode(value)


def decode_value(attribute, value):
    """
    Attribute value from its JSON-friendly representation
    """
    if value is None:
        return None
    return codec_for(attribute).decode(value, attribute.value_type)
