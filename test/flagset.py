"""
Tests for the flag set token parser.

Conventions
- flag sets are built from small module-level dataclasses through walk() and bind();
- every fault is checked for its leftover tokens and its position-first message.
"""
import io
import unittest
from dataclasses import dataclass, field
from datetime import timedelta
from unittest import TestCase

from rich.console import Console

from flagmaker.binder import bind
from flagmaker.faults import *
from flagmaker.flagset import FlagSet
from flagmaker.kinds import *
from flagmaker.walker import walk


@dataclass
class Options:
    level: int = 0
    name: str = ""
    verbose: bool = False
    ratio: float32 = 0.0
    timeout: timedelta = timedelta(seconds=1)
    hosts: list[str] = field(default_factory=list)


def flags(options, name=None):
    return bind(walk(options), FlagSet(name))


class GrammarTest(TestCase):

    def setUp(self):
        self.options = Options()
        self.flags = flags(self.options)

    def testSingleAndDoubleDash(self):
        self.assertEqual(self.flags.parse(["-level", "3", "--name", "x"]), [])
        self.assertEqual(self.options.level, 3)
        self.assertEqual(self.options.name, "x")

    def testInlineValues(self):
        self.assertEqual(self.flags.parse(["--level=4", "-name=a=b"]), [])
        self.assertEqual(self.options.level, 4)
        self.assertEqual(self.options.name, "a=b")

    def testEmptyInlineValue(self):
        self.flags.parse(["--name="])
        self.assertEqual(self.options.name, "")

    def testSpacedValueMayStartWithDash(self):
        self.flags.parse(["--level", "-7"])
        self.assertEqual(self.options.level, -7)

    def testBooleanPresence(self):
        self.assertEqual(self.flags.parse(["--verbose", "rest"]), ["rest"])
        self.assertIs(self.options.verbose, True)

    def testBooleanInline(self):
        self.options.verbose = True
        self.flags.parse(["--verbose=false"])
        self.assertIs(self.options.verbose, False)

    def testBooleanDoesNotConsumeNextToken(self):
        self.assertEqual(self.flags.parse(["--verbose", "false"]), ["false"])
        self.assertIs(self.options.verbose, True)

    def testRepeatedScalarKeepsLast(self):
        self.flags.parse(["--level", "1", "--level", "2"])
        self.assertEqual(self.options.level, 2)

    def testRepeatedSequenceAccumulates(self):
        self.flags.parse(["--hosts", "h1", "--hosts=h2"])
        self.assertEqual(self.options.hosts, ["h1", "h2"])

    def testStopsAtFirstPositional(self):
        self.assertEqual(self.flags.parse(["--level", "1", "file", "--name", "x"]), ["file", "--name", "x"])
        self.assertEqual(self.options.name, "")

    def testStopsAtLoneDash(self):
        self.assertEqual(self.flags.parse(["-", "--level", "1"]), ["-", "--level", "1"])
        self.assertEqual(self.options.level, 0)

    def testDoubleDashIsConsumed(self):
        self.assertEqual(self.flags.parse(["--level", "1", "--", "--name", "x"]), ["--name", "x"])
        self.assertEqual(self.options.name, "")

    def testEmptyInput(self):
        self.assertEqual(self.flags.parse([]), [])
        self.assertEqual(self.options, Options())

    def testReparseStartsSequencesOver(self):
        self.assertEqual(self.flags.parse(["--hosts", "h1", "--hosts", "h2"]), [])
        self.assertEqual(self.flags.parse(["--hosts", "h3"]), [])
        self.assertEqual(self.options.hosts, ["h3"])

    def testReparseWithoutFlagKeepsValues(self):
        self.flags.parse(["--hosts", "h1"])
        self.flags.parse([])
        self.assertEqual(self.options.hosts, ["h1"])

    def testVisited(self):
        self.flags.parse(["--hosts", "a", "--level", "1", "--hosts", "b"])
        self.assertEqual(self.flags.visited, ["hosts", "level"])
        self.flags.parse([])
        self.assertEqual(self.flags.visited, [])


class FaultTest(TestCase):

    def setUp(self):
        self.options = Options()
        self.flags = flags(self.options)

    def testUnrecognized(self):
        with self.assertRaises(UnrecognizedFlagError) as context:
            self.flags.parse(["--level", "10", "--levle", "11", "rest"])
        fault = context.exception
        self.assertIn("flag provided but not defined: --levle", str(fault))
        self.assertIn("at third position", str(fault))
        self.assertEqual(fault.leftover, ["--levle", "11", "rest"])
        self.assertEqual(fault.options["suggestions"], ["level"])
        self.assertEqual(fault.options["hint"], "did you mean 'level'?")
        self.assertIs(fault.code, FaultCode.UNRECOGNIZED_FLAG)
        self.assertEqual(self.options.level, 10)

    def testUnrecognizedWithoutSuggestion(self):
        with self.assertRaises(UnrecognizedFlagError) as context:
            self.flags.parse(["--zzzzzz"])
        self.assertEqual(context.exception.options["suggestions"], [])

    def testMalformed(self):
        for token in ("---level", "-=1", "--=1"):
            with self.subTest(token=token):
                with self.assertRaises(MalformedTokenError) as context:
                    self.flags.parse([token, "next"])
                self.assertEqual(context.exception.leftover, [token, "next"])
                self.assertIn("bad flag syntax", str(context.exception))

    def testMissingValue(self):
        with self.assertRaises(MissingValueError) as context:
            self.flags.parse(["--verbose", "--level"])
        fault = context.exception
        self.assertIn("flag needs an argument: --level at second position", str(fault))
        self.assertEqual(fault.leftover, [])
        self.assertIs(self.options.verbose, True)

    def testInvalidValue(self):
        with self.assertRaises(InvalidValueError) as context:
            self.flags.parse(["--name", "x", "--level", "haha", "--verbose", "rest"])
        fault = context.exception
        self.assertEqual(
            str(fault),
            "invalid value 'haha' for flag 'level' at third position: invalid syntax",
        )
        self.assertEqual(fault.leftover, ["--verbose", "rest"])
        self.assertIsInstance(fault.__cause__, ValueError)
        self.assertEqual(self.options.name, "x")
        self.assertEqual(self.options.level, 0)
        self.assertIs(self.options.verbose, False)

    def testInvalidInlineValue(self):
        with self.assertRaises(InvalidValueError) as context:
            self.flags.parse(["--ratio=1e39", "rest"])
        self.assertIn("value out of range", str(context.exception))
        self.assertEqual(context.exception.leftover, ["rest"])

    def testInvalidBooleanValue(self):
        with self.assertRaises(InvalidValueError):
            self.flags.parse(["--verbose=maybe"])

    def testProgramNameAttached(self):
        named = flags(Options(), "demo")
        with self.assertRaises(UnrecognizedFlagError) as context:
            named.parse(["--nope"])
        self.assertEqual(context.exception.options["prog"], "demo")


class RegistryTest(TestCase):

    def setUp(self):
        self.flags = flags(Options(), "demo")

    def testMappingAccess(self):
        self.assertEqual(len(self.flags), 6)
        self.assertIn("level", self.flags)
        self.assertNotIn("missing", self.flags)
        self.assertEqual(self.flags["level"].name, "level")
        self.assertIsNone(self.flags.lookup("missing"))

    def testAddRejectsDuplicates(self):
        with self.assertRaises(DuplicateFlagNameError):
            self.flags.add(self.flags["level"])

    def testNameValidation(self):
        self.assertIsNone(FlagSet().name)
        self.assertEqual(self.flags.name, "demo")
        with self.assertRaises(TypeError):
            FlagSet(1)

    def testRichTable(self):
        console = Console(file=io.StringIO(), width=160, color_system=None)
        console.print(self.flags)
        output = console.file.getvalue()
        self.assertIn("demo", output)
        self.assertIn("-timeout", output)
        self.assertIn("duration", output)
        self.assertIn("1s", output)
        self.assertIn("[]string", output)


if __name__ == "__main__":
    unittest.main()
