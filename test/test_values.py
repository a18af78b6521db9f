# python
"""
Values module behavioral tests (typed adapters, kind resolution).

Scope
- Validate text conversion per kind: accepted forms, rejected forms, width checks.
- Validate that formatting produces text the same adapter accepts again.
- Validate list adapters: in-place appends into the declarer's list, reset().
- Validate resolve()/adapt(): Kind, Python types, custom adapters, unknown types.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import ipaddress
import unittest
from datetime import datetime, timedelta, timezone
from unittest import TestCase

from clitree import (
    Kind,
    FileMode,
    BoolValue,
    StringValue,
    StringsValue,
    IntValue,
    Int8Value,
    Int16Value,
    Int32Value,
    Int64Value,
    IntsValue,
    UintValue,
    Uint8Value,
    Uint16Value,
    Uint32Value,
    Uint64Value,
    Float32Value,
    Float64Value,
    FloatsValue,
    TimeValue,
    DurationValue,
    TimezoneValue,
    LocalZone,
    IPValue,
    IPsValue,
    IPMaskValue,
    IPNetValue,
    URLValue,
    FileModeValue,
    DeclarationError,
    resolve,
    adapt,
)
from clitree.utils import Unset


class TestScalarValues(TestCase):
    """Behavioral tests for scalar adapters."""

    def testBoolAcceptsLiterals(self):
        value = BoolValue()
        for text in ("1", "t", "T", "TRUE", "true", "True"):
            value.set(text)
            self.assertIs(value.value, True)
        for text in ("0", "f", "F", "FALSE", "false", "False"):
            value.set(text)
            self.assertIs(value.value, False)

    def testBoolRejectsOtherText(self):
        with self.assertRaises(ValueError):
            BoolValue().set("yes")

    def testBoolFormatsLowercase(self):
        value = BoolValue(True)
        self.assertEqual(str(value), "true")

    def testStringKeepsTextVerbatim(self):
        value = StringValue()
        value.set("  spaced  ")
        self.assertEqual(value.value, "  spaced  ")

    def testScalarLastSetWins(self):
        value = IntValue()
        value.set("1")
        value.set("2")
        self.assertEqual(value.value, 2)

    def testIntegerBasePrefixes(self):
        value = IntValue()
        for text, expected in (("0x1F", 31), ("0o17", 15), ("0b101", 5), ("0755", 493), ("-12", -12), ("0", 0)):
            value.set(text)
            self.assertEqual(value.value, expected, text)

    def testIntegerRejectsGarbage(self):
        for text in ("", "abc", "1.5", " 1", "08"):
            with self.assertRaises(ValueError, msg=text):
                IntValue().set(text)

    def testInt8RejectsOutOfRange(self):
        with self.assertRaises(ValueError):
            Int8Value().set("200")
        with self.assertRaises(ValueError):
            Int8Value().set("-129")

    def testInt8AcceptsBounds(self):
        value = Int8Value()
        value.set("-128")
        self.assertEqual(value.value, -128)
        value.set("0x7f")
        self.assertEqual(value.value, 127)

    def testUnsignedRejectsNegative(self):
        with self.assertRaises(ValueError):
            Uint8Value().set("-1")
        with self.assertRaises(ValueError):
            Uint16Value().set("65536")

    def testWidthDefaultsMatchSixtyFourBits(self):
        with self.assertRaises(ValueError):
            IntValue().set("9223372036854775808")
        value = UintValue()
        value.set("18446744073709551615")
        self.assertEqual(value.value, 2 ** 64 - 1)

    def testIntegerTargetMustFitWidth(self):
        with self.assertRaises(DeclarationError):
            Int8Value(300)
        with self.assertRaises(DeclarationError):
            IntValue(True)

    def testFloat64RejectsOverflow(self):
        with self.assertRaises(ValueError):
            Float64Value().set("1e400")
        value = Float64Value()
        value.set("-inf")
        self.assertEqual(value.value, float("-inf"))

    def testFloat32RejectsOverflow(self):
        for text in ("1e39", "-1e39", "3.5e38"):
            with self.assertRaises(ValueError, msg=text):
                Float32Value().set(text)
        value = Float32Value()
        value.set("3.4e38")
        self.assertLess(value.value, float("inf"))
        value.set("inf")
        self.assertEqual(value.value, float("inf"))

    def testFloat32FormatsShortest(self):
        value = Float32Value()
        value.set("3.14")
        self.assertEqual(str(value), "3.14")

    def testDurationParsesGoForms(self):
        value = DurationValue()
        for text, expected in (
                ("1h2m3.5s", timedelta(hours=1, minutes=2, seconds=3.5)),
                ("300ms", timedelta(milliseconds=300)),
                ("1500us", timedelta(microseconds=1500)),
                ("-1.5h", timedelta(hours=-1.5)),
                ("0", timedelta(0)),
        ):
            value.set(text)
            self.assertEqual(value.value, expected, text)

    def testDurationRejectsMalformed(self):
        for text in ("", "5", "1x", "h", "1h 2m"):
            with self.assertRaises(ValueError, msg=text):
                DurationValue().set(text)

    def testDurationFormatsGoStyle(self):
        self.assertEqual(str(DurationValue(timedelta(hours=1, minutes=2, seconds=3.5))), "1h2m3.5s")
        self.assertEqual(str(DurationValue(timedelta(milliseconds=300))), "300ms")
        self.assertEqual(str(DurationValue(timedelta(microseconds=7))), "7µs")
        self.assertEqual(str(DurationValue(timedelta(hours=-1))), "-1h0m0s")
        self.assertEqual(str(DurationValue()), "0s")

    def testTimeParsesIsoFormat(self):
        value = TimeValue()
        value.set("2017-05-13T19:53:08+00:00")
        self.assertEqual(value.value, datetime(2017, 5, 13, 19, 53, 8, tzinfo=timezone.utc))
        with self.assertRaises(ValueError):
            value.set("May 13 2017")

    def testUnsetTimeFormatsEmpty(self):
        self.assertEqual(str(TimeValue()), "")

    def testUnsetAddressReadsBackAfterFirstSet(self):
        value = IPValue()
        self.assertEqual(str(value), "")
        with self.assertRaises(ValueError):
            IPValue().set(str(value))
        value.set("10.0.0.1")
        again = IPValue()
        again.set(str(value))
        self.assertEqual(again.value, value.value)

    def testTimezoneFixedOffsetReadsBack(self):
        for offset, text in (
                (timedelta(hours=2), "UTC+02:00"),
                (timedelta(hours=-5, minutes=-30), "UTC-05:30"),
                (timedelta(hours=1, seconds=15), "UTC+01:00:15"),
        ):
            with self.subTest(text=text):
                first = TimezoneValue(timezone(offset, "named"))
                self.assertEqual(str(first), text)
                second = TimezoneValue()
                second.set(str(first))
                self.assertEqual(second.value, first.value)

    def testTimezoneOffsetBounds(self):
        value = TimezoneValue()
        value.set("UTC+00:00")
        self.assertIs(value.value, timezone.utc)
        for text in ("UTC+24:00", "UTC+2", "UTC+02:00:00.5"):
            with self.assertRaises(ValueError, msg=text):
                TimezoneValue().set(text)

    def testTimezoneLocalReadsBack(self):
        value = TimezoneValue()
        value.set("Local")
        self.assertIsInstance(value.value, LocalZone)
        self.assertEqual(str(value), "Local")
        self.assertIsInstance(value.value.utcoffset(datetime(2020, 1, 15, 12)), timedelta)
        again = TimezoneValue()
        again.set(str(value))
        self.assertIs(again.value, value.value)

    def testLocalZoneConvertsInstants(self):
        zone = TimezoneValue.convert("Local")
        instant = datetime(2020, 7, 1, 12, tzinfo=timezone.utc)
        local = instant.astimezone(zone)
        self.assertIs(local.tzinfo, zone)
        self.assertEqual(local, instant)

    def testTimezoneUtcAndUnknown(self):
        value = TimezoneValue()
        value.set("UTC")
        self.assertIs(value.value, timezone.utc)
        with self.assertRaises(ValueError):
            value.set("Not/AZone")

    def testIPParsesBothFamilies(self):
        value = IPValue()
        value.set("::1")
        self.assertEqual(value.value, ipaddress.ip_address("::1"))
        with self.assertRaises(ValueError):
            value.set("300.1.1.1")

    def testIPMaskRequiresContiguousBits(self):
        value = IPMaskValue()
        value.set("255.255.255.0")
        self.assertEqual(str(value), "255.255.255.0")
        with self.assertRaises(ValueError):
            value.set("255.0.255.0")

    def testIPNetRequiresPrefix(self):
        value = IPNetValue()
        value.set("10.1.2.3/8")
        self.assertEqual(str(value), "10.0.0.0/8")
        with self.assertRaises(ValueError):
            value.set("10.0.0.1")

    def testURLRejectsMalformed(self):
        for text in ("://missing-scheme", "http://host:port/", "http://host/%zz", "http://host/\x7f"):
            with self.assertRaises(ValueError, msg=text):
                URLValue().set(text)

    def testURLKeepsComponents(self):
        value = URLValue()
        value.set("https://example.com:8443/path?q=1#frag")
        self.assertEqual(value.value.port, 8443)
        self.assertEqual(str(value), "https://example.com:8443/path?q=1#frag")

    def testFileModeNumericAndSymbolic(self):
        value = FileModeValue()
        value.set("0755")
        self.assertEqual(value.value, 0o755)
        self.assertIsInstance(value.value, FileMode)
        value.set("-rw-r--r--")
        self.assertEqual(value.value, 0o644)
        value.set("rwsr-xr-x")
        self.assertEqual(value.value, 0o4755)
        self.assertEqual(str(value), "04755")

    def testFileModeSymbolicProperty(self):
        self.assertEqual(FileMode(0o750).symbolic, "rwxr-x---")

    def testSetRequiresString(self):
        with self.assertRaises(TypeError):
            IntValue().set(5)

    def testResetRestoresInitialValue(self):
        value = IntValue(5)
        value.set("7")
        value.reset()
        self.assertEqual(value.value, 5)

    def testFormattedTextParsesBack(self):
        for adapter, text in (
                (BoolValue, "true"),
                (StringValue, "hello"),
                (IntValue, "-42"),
                (Int8Value, "-128"),
                (Int16Value, "300"),
                (Int32Value, "70000"),
                (Int64Value, "9223372036854775807"),
                (UintValue, "18446744073709551615"),
                (Uint8Value, "255"),
                (Uint16Value, "65535"),
                (Uint32Value, "4294967295"),
                (Uint64Value, "1"),
                (Float32Value, "0.1"),
                (Float64Value, "2.5"),
                (TimeValue, "2017-05-13T19:53:08+00:00"),
                (DurationValue, "90m"),
                (TimezoneValue, "UTC"),
                (IPValue, "10.0.0.1"),
                (IPMaskValue, "255.255.0.0"),
                (IPNetValue, "fd00::/8"),
                (URLValue, "https://example.com/a?b=c"),
                (FileModeValue, "0640"),
        ):
            with self.subTest(adapter=adapter.__name__):
                first = adapter()
                first.set(text)
                second = adapter()
                second.set(str(first))
                self.assertEqual(second.value, first.value)


class TestListValues(TestCase):
    """Behavioral tests for repeatable adapters."""

    def testAppendsIntoDeclarerList(self):
        destination = []
        value = StringsValue(destination)
        value.set("a")
        value.set("b,c")
        self.assertIs(value.value, destination)
        self.assertEqual(destination, ["a", "b,c"])

    def testElementsAreConverted(self):
        value = IntsValue()
        value.set("0x10")
        value.set("-1")
        self.assertEqual(value.value, [16, -1])
        with self.assertRaises(ValueError):
            value.set("x")

    def testFormatsCommaJoined(self):
        value = FloatsValue([1.5, 2.0])
        self.assertEqual(str(value), "1.5,2.0")

    def testSingleElementParsesBack(self):
        first = IPsValue()
        first.set("10.0.0.1")
        second = IPsValue()
        second.set(str(first))
        self.assertEqual(second.value, first.value)

    def testResetKeepsListIdentity(self):
        destination = ["keep"]
        value = StringsValue(destination)
        value.set("extra")
        value.reset()
        self.assertIs(value.value, destination)
        self.assertEqual(destination, ["keep"])

    def testTargetMustBeList(self):
        with self.assertRaises(DeclarationError):
            StringsValue(("a",))
        with self.assertRaises(DeclarationError):
            IntsValue(["x"])


class TestResolution(TestCase):
    """Behavioral tests for resolve() and adapt()."""

    def testResolveKinds(self):
        self.assertIs(resolve(Kind.INT8), Int8Value)
        self.assertIs(resolve("duration"), DurationValue)

    def testResolvePythonTypes(self):
        self.assertIs(resolve(bool), BoolValue)
        self.assertIs(resolve(int), IntValue)
        self.assertIs(resolve(float), Float64Value)
        self.assertIs(resolve(list[str]), StringsValue)
        self.assertIs(resolve(timedelta), DurationValue)
        self.assertIs(resolve(ipaddress.IPv4Network), IPNetValue)

    def testResolveUnknownTypeIsDeclarationError(self):
        for object in (complex, list[complex], "nope", [1]):
            with self.assertRaises(DeclarationError, msg=repr(object)):
                resolve(object)

    def testDeclarationErrorIsTypeError(self):
        self.assertTrue(issubclass(DeclarationError, TypeError))

    def testAdaptSynthesizesDestination(self):
        self.assertIsInstance(adapt(), StringValue)
        self.assertIsInstance(adapt(isbool=True), BoolValue)

    def testAdaptInfersFromTarget(self):
        value = adapt(Unset, 5)
        self.assertIsInstance(value, IntValue)
        self.assertEqual(value.value, 5)
        self.assertIsInstance(adapt(Unset, True), BoolValue)
        self.assertIsInstance(adapt(Unset, timedelta(seconds=1)), DurationValue)

    def testAdaptListTargetNeedsType(self):
        with self.assertRaises(DeclarationError):
            adapt(Unset, [])
        destination = []
        value = adapt(list[int], destination)
        self.assertIsInstance(value, IntsValue)
        self.assertIs(value.value, destination)

    def testAdaptKeepsCustomAdapter(self):
        class Pair:
            def __init__(self):
                self.parts = ()

            def set(self, text):
                left, _, right = text.partition(":")
                self.parts = (left, right)

            def __str__(self):
                return ":".join(self.parts)

        pair = Pair()
        self.assertIs(adapt(Unset, pair), pair)
        with self.assertRaises(DeclarationError):
            adapt(str, pair)

    def testAdaptUnknownTargetType(self):
        with self.assertRaises(DeclarationError):
            adapt(Unset, object())


if __name__ == "__main__":
    unittest.main()
