r"""
clitree typed value adapters.

Overview
- Value: base adapter. An adapter owns the destination of one flag and converts
  between command-line text and that destination:
  • set(text): parse text and store it (scalars replace, lists append one element).
  • str(adapter): render the destination back in a form accepted by set()
    ("" for a destination that was never set and has no zero value).
  • get(): the current destination value.
  • reset(): restore the destination captured at construction time.

- Kind: closed enumeration of the supported destination kinds.
- resolve(kind_or_type): map a Kind or a Python type to its adapter class.
- adapt(type, target, isbool): build the adapter a flag will own.

Destinations
- Scalar adapters keep their value on the adapter (adapter.value); the optional
  target is the initial value.
- List adapters append into the list supplied as target, in place. The list
  object is never replaced, so a declarer holding a reference sees every value.
- Any object with a callable set(text) and a __str__ is accepted as a custom
  adapter (see adapt()).

Text forms
- bool:      1 t T TRUE true True / 0 f F FALSE false False
- integers:  decimal, 0x.., 0o.., 0b.., legacy leading-zero octal (0755)
- duration:  Go-style "1h2m3.5s", "300ms", "-1.5h", "0"
- time:      ISO 8601 / RFC 3339 ("2017-05-13T19:53:08+00:00")
- timezone:  IANA key ("Europe/Paris"), "UTC", "UTC+02:00", "Local"
- IP mask:   dotted form ("255.255.255.0")
- IP network: CIDR ("10.0.0.0/8")
- file mode: numeric ("0755", "0o755") or symbolic ("-rwxr-xr-x")

Errors
- set() raises ValueError with a descriptive message when the text is not
  acceptable for the destination (out of range, malformed address, ...).
- resolve()/adapt() raise DeclarationError for unsupported destinations.
"""
import builtins
import enum
import ipaddress
import math
import re
import stat
import struct
from datetime import datetime, timedelta, timezone, tzinfo
from fractions import Fraction
from urllib.parse import SplitResult, urlsplit, urlunsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .faults import DeclarationError
from .utils import Unset


class Kind(enum.Enum):
    """
    Supported destination kinds (one adapter class per member).
    """
    BOOL = "bool"
    STRING = "string"
    STRINGS = "strings"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    INTS = "ints"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTS = "uints"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    FLOATS = "floats"
    TIME = "time"
    DURATION = "duration"
    TIMEZONE = "timezone"
    IP = "ip"
    IPS = "ips"
    IPMASK = "ipmask"
    IPNET = "ipnet"
    IPNETS = "ipnets"
    URL = "url"
    URLS = "urls"
    FILEMODE = "filemode"


class FileMode(int):
    """
    Permission bits of a file (what os.chmod() expects).
    """

    @property
    def symbolic(self):
        """
        ls-style rendering without the file type, e.g. "rwxr-xr-x".
        """
        return stat.filemode(self)[1:]

    def __repr__(self):
        return "FileMode(0o%o)" % self


def _parse_integer(text):
    # Go's base-0 rules: 0x/0o/0b prefixes and a leading zero meaning octal.
    if text != text.strip():
        raise ValueError("invalid syntax %r" % text)
    if re.fullmatch(r"[+-]?0[0-7_]+", text):
        return int(text, 8)
    try:
        return int(text, 0)
    except ValueError:
        raise ValueError("invalid syntax %r" % text) from None


def _parse_duration(text):
    match = re.fullmatch(r"([-+]?)(.*)", text, re.S)
    sign, rest = match[1], match[2]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError("invalid duration %r" % text)

    total = Fraction(0)
    position = 0
    for segment in re.finditer(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)", rest):
        if segment.start() != position:
            raise ValueError("invalid duration %r" % text)
        total += Fraction(segment[1]) * _DURATION_UNITS[segment[2]]
        position = segment.end()
    if position != len(rest):
        raise ValueError("unknown unit or invalid duration %r" % text)

    # timedelta resolution is one microsecond; sub-microsecond parts are truncated.
    microseconds = int(total / 1000)
    try:
        return timedelta(microseconds=-microseconds if sign == "-" else microseconds)
    except OverflowError:
        raise ValueError("invalid duration %r: out of range" % text) from None


_DURATION_UNITS = {
    "ns": Fraction(1),
    "us": Fraction(1000),
    "µs": Fraction(1000),  # U+00B5
    "μs": Fraction(1000),  # U+03BC
    "ms": Fraction(1000_000),
    "s": Fraction(1000_000_000),
    "m": Fraction(60_000_000_000),
    "h": Fraction(3600_000_000_000),
}


def _decimal(whole, fraction, digits):
    decimals = ("%0*d" % (digits, fraction)).rstrip("0")
    return "%d.%s" % (whole, decimals) if decimals else str(whole)


def _format_duration(delta):
    microseconds = (delta.days * 86400 + delta.seconds) * 1000_000 + delta.microseconds
    if not microseconds:
        return "0s"

    sign = "-" if microseconds < 0 else ""
    microseconds = abs(microseconds)
    if microseconds < 1000:
        return "%s%dµs" % (sign, microseconds)
    if microseconds < 1000_000:
        return sign + _decimal(*divmod(microseconds, 1000), 3) + "ms"

    seconds, fraction = divmod(microseconds, 1000_000)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    text = _decimal(seconds, fraction, 6) + "s"
    if hours:
        return "%s%dh%dm%s" % (sign, hours, minutes, text)
    if minutes:
        return "%s%dm%s" % (sign, minutes, text)
    return sign + text


class Value:
    """
    Base adapter: subclasses provide kind, type, zero, convert() and format().

    Scalar protocol
    - value: current destination value.
    - set(text): value = convert(text) (last occurrence wins).
    - str(adapter): format(value), or "" when the value is None.

    Adapters without a zero value (time, IP, IP mask, IP network) start
    at None and render as "", which set() rejects. For them set(str(adapter))
    holds once a value has been set; a flag never hands "" from an unset
    destination back to set().
    """
    kind = Unset
    type = object
    zero = None
    isbool = False

    def __init__(self, target=Unset, /):
        if target is not Unset:
            self.check(target)
        self._initial = self.zero if target is Unset else target
        self.value = self._initial

    @classmethod
    def check(cls, object):
        if not isinstance(object, cls.type):
            raise DeclarationError("%s destination must be %s, not %s" % (
                cls.__name__, getattr(cls.type, "__name__", cls.type), type(object).__name__
            ))

    @classmethod
    def convert(cls, text):
        raise NotImplementedError

    @classmethod
    def format(cls, object):
        return str(object)

    def set(self, text):
        if not isinstance(text, str):
            raise TypeError("%s.set() argument must be a string" % type(self).__name__)
        self.value = self.convert(text)

    def get(self):
        return self.value

    def reset(self):
        self.value = self._initial

    def __str__(self):
        return "" if self.value is None else self.format(self.value)

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, str(self))


class BoolValue(Value):
    kind = Kind.BOOL
    type = bool
    zero = False
    isbool = True

    @classmethod
    def convert(cls, text):
        if text in ("1", "t", "T", "TRUE", "true", "True"):
            return True
        if text in ("0", "f", "F", "FALSE", "false", "False"):
            return False
        raise ValueError("invalid boolean %r" % text)

    @classmethod
    def format(cls, object):
        return "true" if object else "false"


class StringValue(Value):
    kind = Kind.STRING
    type = str
    zero = ""

    @classmethod
    def convert(cls, text):
        return text


class IntValue(Value):
    """
    Signed integer of a fixed width; out-of-range literals are rejected.
    """
    kind = Kind.INT
    type = int
    zero = 0
    bits = 64
    signed = True

    @classmethod
    def check(cls, object):
        if isinstance(object, bool) or not isinstance(object, int):
            raise DeclarationError("%s destination must be an integer, not %s" % (cls.__name__, type(object).__name__))
        try:
            cls.bounded(object, repr(object))
        except ValueError as exception:
            raise DeclarationError(str(exception)) from None

    @classmethod
    def bounded(cls, number, text):
        if cls.signed:
            low, high = -(1 << (cls.bits - 1)), (1 << (cls.bits - 1)) - 1
        else:
            low, high = 0, (1 << cls.bits) - 1
        if not low <= number <= high:
            raise ValueError("value %s out of range for %s (%d..%d)" % (text, cls.kind.value, low, high))
        return number

    @classmethod
    def convert(cls, text):
        return cls.bounded(_parse_integer(text), repr(text))


class Int8Value(IntValue):
    kind = Kind.INT8
    bits = 8


class Int16Value(IntValue):
    kind = Kind.INT16
    bits = 16


class Int32Value(IntValue):
    kind = Kind.INT32
    bits = 32


class Int64Value(IntValue):
    kind = Kind.INT64
    bits = 64


class UintValue(IntValue):
    kind = Kind.UINT
    signed = False


class Uint8Value(UintValue):
    kind = Kind.UINT8
    bits = 8


class Uint16Value(UintValue):
    kind = Kind.UINT16
    bits = 16


class Uint32Value(UintValue):
    kind = Kind.UINT32
    bits = 32


class Uint64Value(UintValue):
    kind = Kind.UINT64
    bits = 64


class Float64Value(Value):
    kind = Kind.FLOAT64
    type = float
    zero = 0.0

    @classmethod
    def check(cls, object):
        if isinstance(object, bool) or not isinstance(object, int | float):
            raise DeclarationError("%s destination must be a number, not %s" % (cls.__name__, type(object).__name__))

    @classmethod
    def convert(cls, text):
        if text != text.strip():
            raise ValueError("invalid syntax %r" % text)
        try:
            number = float(text)
        except ValueError:
            raise ValueError("invalid syntax %r" % text) from None
        if math.isinf(number) and "inf" not in text.lower():
            raise ValueError("value %r out of range for %s" % (text, cls.kind.value))
        return number

    @classmethod
    def format(cls, object):
        return repr(float(object))


class Float32Value(Float64Value):
    kind = Kind.FLOAT32

    @classmethod
    def narrow(cls, number):
        try:
            narrowed = struct.unpack("f", struct.pack("f", number))[0]
        except OverflowError:
            narrowed = math.inf
        # finite doubles beyond the float32 range pack to infinity
        if math.isinf(narrowed) and not math.isinf(number):
            raise ValueError("value %r out of range for float32" % number)
        return narrowed

    @classmethod
    def convert(cls, text):
        try:
            return cls.narrow(super().convert(text))
        except ValueError as exception:
            raise ValueError(str(exception).replace("float64", "float32")) from None

    @classmethod
    def format(cls, object):
        if math.isnan(object) or math.isinf(object):
            return repr(float(object))
        # shortest text that narrows back to the same float32
        for digits in range(1, 10):
            try:
                if cls.narrow(float(text := format(object, ".%dg" % digits))) == object:
                    return text
            except ValueError:
                continue
        return repr(float(object))


class TimeValue(Value):
    kind = Kind.TIME
    type = datetime

    @classmethod
    def convert(cls, text):
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            raise ValueError("invalid time %r (expected ISO 8601, e.g. 2017-05-13T19:53:08Z)" % text) from None

    @classmethod
    def format(cls, object):
        return object.isoformat()


class DurationValue(Value):
    kind = Kind.DURATION
    type = timedelta
    zero = timedelta(0)

    @classmethod
    def convert(cls, text):
        return _parse_duration(text)

    @classmethod
    def format(cls, object):
        return _format_duration(object)


class LocalZone(tzinfo):
    """
    The system time zone. Offsets and names are looked up per datetime, so
    daylight saving transitions are followed.
    """

    def _current(self, dt):
        if dt is None:
            return datetime.now().astimezone().tzinfo
        return dt.replace(tzinfo=None).astimezone().tzinfo

    def utcoffset(self, dt):
        return self._current(dt).utcoffset(None)

    def dst(self, dt):
        return None

    def tzname(self, dt):
        return self._current(dt).tzname(None)

    def fromutc(self, dt):
        return dt.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=self)

    def __repr__(self):
        return "LocalZone()"


_LOCAL = LocalZone()

_OFFSET = re.compile(r"UTC([+-])(\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{6}))?)?")


class TimezoneValue(Value):
    """
    Time zone by IANA key, "UTC", a fixed "UTC+HH:MM" offset or "Local".
    """
    kind = Kind.TIMEZONE
    type = tzinfo
    zero = timezone.utc

    @classmethod
    def convert(cls, text):
        if text in ("", "UTC"):
            return timezone.utc
        if text == "Local":
            return _LOCAL
        if match := _OFFSET.fullmatch(text):
            sign, hours, minutes, seconds, microseconds = match.groups()
            offset = timedelta(
                hours=int(hours),
                minutes=int(minutes),
                seconds=int(seconds or 0),
                microseconds=int(microseconds or 0),
            )
            try:
                return timezone(-offset if sign == "-" else offset) if offset else timezone.utc
            except ValueError:
                raise ValueError("time zone offset %r out of range" % text) from None
        try:
            return ZoneInfo(text)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError("unknown time zone %r" % text) from None

    @classmethod
    def format(cls, object):
        if isinstance(object, LocalZone):
            return "Local"
        if isinstance(object, ZoneInfo) and object.key:
            return object.key
        if isinstance(object, timezone):
            if not (offset := object.utcoffset(None)):
                return "UTC"
            hours, rest = divmod(abs(offset), timedelta(hours=1))
            minutes, rest = divmod(rest, timedelta(minutes=1))
            text = "UTC%s%02d:%02d" % ("-" if offset < timedelta(0) else "+", hours, minutes)
            if rest:
                text += ":%02d" % rest.seconds
                if rest.microseconds:
                    text += ".%06d" % rest.microseconds
            return text
        return str(object)


class IPValue(Value):
    kind = Kind.IP
    type = ipaddress.IPv4Address | ipaddress.IPv6Address

    @classmethod
    def convert(cls, text):
        try:
            return ipaddress.ip_address(text)
        except ValueError:
            raise ValueError("invalid IP address %r" % text) from None


class IPMaskValue(Value):
    """
    Network mask in dotted form; the one bits must be contiguous.
    """
    kind = Kind.IPMASK
    type = ipaddress.IPv4Address | ipaddress.IPv6Address

    @classmethod
    def convert(cls, text):
        try:
            mask = ipaddress.ip_address(text)
        except ValueError:
            raise ValueError("invalid IP mask %r" % text) from None
        inverted = ~int(mask) & ((1 << mask.max_prefixlen) - 1)
        if inverted & (inverted + 1):
            raise ValueError("invalid IP mask %r: non-contiguous bits" % text)
        return mask


class IPNetValue(Value):
    kind = Kind.IPNET
    type = ipaddress.IPv4Network | ipaddress.IPv6Network

    @classmethod
    def convert(cls, text):
        if "/" not in text:
            raise ValueError("invalid CIDR address %r" % text)
        try:
            return ipaddress.ip_network(text, strict=False)
        except ValueError:
            raise ValueError("invalid CIDR address %r" % text) from None


class URLValue(Value):
    kind = Kind.URL
    type = SplitResult

    @classmethod
    def convert(cls, text):
        if re.search(r"[\x00-\x1f\x7f]", text):
            raise ValueError("invalid URL %r: control character" % text)
        if text.startswith(":"):
            raise ValueError("invalid URL %r: missing protocol scheme" % text)
        if re.search(r"%(?![0-9A-Fa-f]{2})", text):
            raise ValueError("invalid URL %r: bad escape sequence" % text)
        try:
            url = urlsplit(text)
            url.port  # validates the port
        except ValueError as exception:
            raise ValueError("invalid URL %r: %s" % (text, exception)) from None
        return url

    @classmethod
    def format(cls, object):
        return urlunsplit(object)


class FileModeValue(Value):
    kind = Kind.FILEMODE
    type = int
    zero = FileMode(0)

    @classmethod
    def check(cls, object):
        if isinstance(object, bool) or not isinstance(object, int) or not 0 <= object <= 0xFFFFFFFF:
            raise DeclarationError("%s destination must be a 32-bit unsigned integer" % cls.__name__)

    @classmethod
    def convert(cls, text):
        if re.fullmatch(r"[-dlcbps]?[r-][w-][xsS-][r-][w-][xsS-][r-][w-][xtT-]", text):
            return cls.symbolic(text[-9:])
        mode = _parse_integer(text)
        if not 0 <= mode <= 0xFFFFFFFF:
            raise ValueError("value %r out of range for file mode" % text)
        return FileMode(mode)

    @classmethod
    def symbolic(cls, text):
        mode = 0
        for index, (character, bit) in enumerate(zip(text, (0o400, 0o200, 0o100, 0o40, 0o20, 0o10, 0o4, 0o2, 0o1))):
            if character in "rwxst":
                mode |= bit
            if character in "sS":
                mode |= stat.S_ISUID if index == 2 else stat.S_ISGID
            if character in "tT":
                mode |= stat.S_ISVTX
        return FileMode(mode)

    @classmethod
    def format(cls, object):
        return "0%o" % object if object else "0"

    def reset(self):
        self.value = FileMode(self._initial)

    def set(self, text):
        super().set(text)
        self.value = FileMode(self.value)


class ListValue(Value):
    """
    Repeatable adapter: every set() appends one element converted by `element`.

    The destination list is the one supplied at construction (or a fresh one);
    it is mutated in place and never rebound.
    """
    element = StringValue
    type = list

    def __init__(self, target=Unset, /):
        if target is Unset:
            target = []
        if not isinstance(target, list):
            raise DeclarationError("%s destination must be a list, not %s" % (type(self).__name__, type(target).__name__))
        for item in target:
            self.element.check(item)
        self._initial = list(target)
        self.value = target

    def set(self, text):
        if not isinstance(text, str):
            raise TypeError("%s.set() argument must be a string" % type(self).__name__)
        self.value.append(self.element.convert(text))

    def reset(self):
        self.value[:] = self._initial

    def __str__(self):
        return ",".join(map(self.element.format, self.value))


class StringsValue(ListValue):
    kind = Kind.STRINGS
    element = StringValue


class IntsValue(ListValue):
    kind = Kind.INTS
    element = IntValue


class UintsValue(ListValue):
    kind = Kind.UINTS
    element = UintValue


class FloatsValue(ListValue):
    kind = Kind.FLOATS
    element = Float64Value


class IPsValue(ListValue):
    kind = Kind.IPS
    element = IPValue


class IPNetsValue(ListValue):
    kind = Kind.IPNETS
    element = IPNetValue


class URLsValue(ListValue):
    kind = Kind.URLS
    element = URLValue


_ADAPTERS = {
    adapter.kind: adapter for adapter in (
        BoolValue, StringValue, StringsValue,
        IntValue, Int8Value, Int16Value, Int32Value, Int64Value, IntsValue,
        UintValue, Uint8Value, Uint16Value, Uint32Value, Uint64Value, UintsValue,
        Float32Value, Float64Value, FloatsValue,
        TimeValue, DurationValue, TimezoneValue,
        IPValue, IPsValue, IPMaskValue, IPNetValue, IPNetsValue,
        URLValue, URLsValue,
        FileModeValue,
    )
}

# Python types accepted in place of a Kind.
_KINDS = {
    bool: Kind.BOOL,
    str: Kind.STRING,
    int: Kind.INT,
    float: Kind.FLOAT64,
    list[str]: Kind.STRINGS,
    list[int]: Kind.INTS,
    list[float]: Kind.FLOATS,
    datetime: Kind.TIME,
    timedelta: Kind.DURATION,
    tzinfo: Kind.TIMEZONE,
    timezone: Kind.TIMEZONE,
    ZoneInfo: Kind.TIMEZONE,
    LocalZone: Kind.TIMEZONE,
    ipaddress.IPv4Address: Kind.IP,
    ipaddress.IPv6Address: Kind.IP,
    list[ipaddress.IPv4Address]: Kind.IPS,
    list[ipaddress.IPv6Address]: Kind.IPS,
    ipaddress.IPv4Network: Kind.IPNET,
    ipaddress.IPv6Network: Kind.IPNET,
    list[ipaddress.IPv4Network]: Kind.IPNETS,
    list[ipaddress.IPv6Network]: Kind.IPNETS,
    SplitResult: Kind.URL,
    list[SplitResult]: Kind.URLS,
    FileMode: Kind.FILEMODE,
}


def resolve(object, /):
    """
    Return the adapter class for a Kind or a Python type.

    Raises
    - DeclarationError: when nothing is registered for the given object.
    """
    if isinstance(object, str):
        try:
            object = Kind(object)
        except ValueError:
            pass
    if isinstance(object, Kind):
        return _ADAPTERS[object]
    try:
        return _ADAPTERS[_KINDS[object]]
    except (KeyError, TypeError):
        raise DeclarationError("unknown type of flag value: %r" % (object,)) from None


def iscustom(object, /):
    """
    True when object can be used directly as an adapter (set(text) + __str__).
    """
    return not isinstance(object, type) and callable(getattr(object, "set", None))


def adapt(type=Unset, target=Unset, /, isbool=False):
    """
    Build the adapter for a flag.

    Resolution order
    - target is a custom adapter and no type is given → the target itself.
    - type given → resolve(type)(target).
    - only target given → the kind is inferred from the target's Python type
      (list targets need an explicit type).
    - nothing given → BoolValue() when isbool, else StringValue().
    """
    if type is Unset:
        if target is Unset:
            return BoolValue() if isbool else StringValue()
        if iscustom(target):
            return target
        if isinstance(target, list):
            raise DeclarationError("list destinations need an explicit type (e.g. type=list[str])")
        if isinstance(target, FileMode):
            return FileModeValue(target)
        for python, kind in _KINDS.items():
            if builtins.type(target) is python:
                return _ADAPTERS[kind](target)
        if isinstance(target, tzinfo):
            return TimezoneValue(target)
        raise DeclarationError("unknown type of flag value: %s" % builtins.type(target).__name__)
    if iscustom(target):
        raise DeclarationError("a custom value adapter cannot be combined with a type")
    return resolve(type)(target)


__all__ = (
    "Kind",
    "FileMode",
    "Value",
    "BoolValue",
    "StringValue",
    "StringsValue",
    "IntValue",
    "Int8Value",
    "Int16Value",
    "Int32Value",
    "Int64Value",
    "IntsValue",
    "UintValue",
    "Uint8Value",
    "Uint16Value",
    "Uint32Value",
    "Uint64Value",
    "UintsValue",
    "Float32Value",
    "Float64Value",
    "FloatsValue",
    "TimeValue",
    "DurationValue",
    "LocalZone",
    "TimezoneValue",
    "IPValue",
    "IPsValue",
    "IPMaskValue",
    "IPNetValue",
    "IPNetsValue",
    "URLValue",
    "URLsValue",
    "FileModeValue",
    "ListValue",
    "resolve",
    "adapt",
    "iscustom",
)
