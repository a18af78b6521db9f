# python
"""
Flags module behavioral tests (declaration, lifecycle, environment fallback).

Scope
- Validate names parsing/validation and metadata defaults.
- Validate initialize(): destination synthesis, reset, environment then default, visited reset.
- Validate set_value()/get_value() and their faults.

Conventions
- Test method names follow CamelCase per project convention.
- Environment variables are patched with unittest.mock.patch.dict.
"""

from __future__ import annotations

import os
import unittest
from unittest import TestCase
from unittest.mock import patch

from clitree import Flag, Kind, DeclarationError, InvalidValueError, InvalidEnvironmentError, FaultCode


class TestFlagDeclaration(TestCase):
    """Behavioral tests for Flag construction."""

    def testNamesAreSplitAndTrimmed(self):
        flag = Flag(" p ,  port ")
        self.assertEqual(flag.names, ("p", "port"))
        self.assertEqual(flag.name, "p")

    def testNamesMustBeString(self):
        with self.assertRaises(TypeError):
            Flag(["p", "port"])

    def testEmptyNameRejected(self):
        with self.assertRaises(ValueError):
            Flag("")
        with self.assertRaises(ValueError):
            Flag("p,,port")

    def testDashedOrSpacedNameRejected(self):
        for names in ("-p", "--port", "my port", "a=b"):
            with self.assertRaises(ValueError, msg=names):
                Flag(names)

    def testDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            Flag("p, p")

    def testPlaceholderDefaultsToValue(self):
        self.assertEqual(Flag("name").placeholder, "value")
        self.assertEqual(Flag("name", placeholder="NAME").placeholder, "NAME")

    def testUsageDefaultsToNone(self):
        self.assertIsNone(Flag("name").usage)
        with self.assertRaises(ValueError):
            Flag("name", usage="  ")

    def testEnvvarsSplit(self):
        self.assertEqual(Flag("port", envvar="APP_PORT, PORT").envvars, ("APP_PORT", "PORT"))
        self.assertEqual(Flag("port").envvars, ())

    def testBoolTypeImpliesIsBool(self):
        self.assertTrue(Flag("v", type=bool).isbool)
        self.assertTrue(Flag("v", type=Kind.BOOL).isbool)
        self.assertTrue(Flag("v", target=False).isbool)
        self.assertFalse(Flag("v", type=int).isbool)

    def testUnknownKindNameRejected(self):
        with self.assertRaises(DeclarationError):
            Flag("x", type="nope")

    def testDefaultMustBeText(self):
        with self.assertRaises(TypeError):
            Flag("port", type=int, default=8080)

    def testRepresentationUsesTypename(self):
        self.assertTrue(repr(Flag("v, verbose", type=bool)).startswith("flag(names=('v', 'verbose')"))


class TestFlagLifecycle(TestCase):
    """Behavioral tests for initialize(), set_value() and get_value()."""

    def testSynthesizesStringDestination(self):
        flag = Flag("name")
        flag.initialize()
        self.assertEqual(flag.value, "")
        self.assertFalse(flag.isbool)

    def testSynthesizesBoolDestination(self):
        flag = Flag("verbose", isbool=True)
        flag.initialize()
        self.assertIs(flag.value, False)

    def testDefaultAppliedThroughAdapter(self):
        flag = Flag("port", type=int, default="8080")
        flag.initialize()
        self.assertEqual(flag.value, 8080)
        self.assertEqual(flag.get_value(), "8080")
        self.assertFalse(flag.visited)

    def testEmptyDefaultIgnored(self):
        flag = Flag("port", type=int, target=1, default="")
        flag.initialize()
        self.assertEqual(flag.value, 1)

    def testMalformedDefaultIsDeclarationError(self):
        with self.assertRaises(DeclarationError):
            Flag("port", type=Kind.INT8, default="200").initialize()

    def testUnknownTypeIsDeclarationError(self):
        with self.assertRaises(DeclarationError):
            Flag("ratio", type=complex).initialize()

    def testEnvironmentBeatsDefault(self):
        flag = Flag("port", type=int, default="8080", envvar="CLITREE_TEST_PORT")
        with patch.dict(os.environ, {"CLITREE_TEST_PORT": "9090"}):
            self.assertIsNone(flag.initialize())
        self.assertEqual(flag.value, 9090)
        self.assertFalse(flag.visited)

    def testFirstExistingEnvironmentVariableWins(self):
        flag = Flag("name", default="fallback", envvar="CLITREE_TEST_MISSING, CLITREE_TEST_EMPTY, CLITREE_TEST_NAME")
        environ = {"CLITREE_TEST_EMPTY": "", "CLITREE_TEST_NAME": "named"}
        with patch.dict(os.environ, environ):
            os.environ.pop("CLITREE_TEST_MISSING", None)
            flag.initialize()
        self.assertEqual(flag.value, "")

    def testMalformedEnvironmentReturnsFault(self):
        flag = Flag("port", type=int, default="8080", envvar="CLITREE_TEST_PORT")
        with patch.dict(os.environ, {"CLITREE_TEST_PORT": "eighty"}):
            fault = flag.initialize()
        self.assertIsInstance(fault, InvalidEnvironmentError)
        self.assertEqual(fault.options["code"], FaultCode.INVALID_ENVIRONMENT)
        self.assertIn("CLITREE_TEST_PORT", fault.message)
        self.assertEqual(flag.value, 8080)

    def testSetValueMarksVisited(self):
        flag = Flag("count", type=int)
        flag.initialize()
        flag.set_value("3")
        self.assertEqual(flag.value, 3)
        self.assertTrue(flag.visited)

    def testSetValueRejectionNamesFlag(self):
        flag = Flag("count", type=int)
        flag.initialize()
        with self.assertRaises(InvalidValueError) as context:
            flag.set_value("three")
        self.assertIn("-count", context.exception.message)
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testInitializeResetsStateBetweenRuns(self):
        flag = Flag("count", type=int, default="1")
        flag.initialize()
        flag.set_value("5")
        flag.initialize()
        self.assertEqual(flag.value, 1)
        self.assertFalse(flag.visited)

    def testInitializeRestoresTargetWithoutDefault(self):
        flag = Flag("count", type=int, target=7)
        flag.initialize()
        flag.set_value("5")
        flag.initialize()
        self.assertEqual(flag.value, 7)

    def testListDefaultsDoNotAccumulate(self):
        destination = []
        flag = Flag("tag", type=list[str], target=destination, default=("a", "b"))
        flag.initialize()
        flag.set_value("c")
        flag.initialize()
        self.assertEqual(destination, ["a", "b"])
        self.assertIs(flag.value, destination)

    def testCustomAdapter(self):
        class Upper:
            def __init__(self):
                self.text = ""

            def set(self, text):
                if not text:
                    raise ValueError("empty")
                self.text = text.upper()

            def __str__(self):
                return self.text

        upper = Upper()
        flag = Flag("shout", target=upper, default="hi")
        flag.initialize()
        self.assertIs(flag.value, upper)
        self.assertEqual(flag.get_value(), "HI")
        with self.assertRaises(InvalidValueError):
            flag.set_value("")


if __name__ == "__main__":
    unittest.main()
