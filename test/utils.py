"""
Tests for the shared utilities.

Covers the Unset sentinel, coalesce(), rename(), mirror() and ordinal(), which
every other module relies on for defaults, read-only properties and
position-first messages.
"""
import unittest
from unittest import TestCase

from flagmaker.utils import *


class Holder:
    items = mirror("items")
    label = mirror("label")

    def __init__(self):
        self._items = [1, (2, 3)]
        self._label = "holder"


class UnsetTest(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)

    def testFalsy(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)

    def testRepr(self):
        self.assertEqual(repr(Unset), "Unset")

    def testFinal(self):
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})

    def testUnion(self):
        self.assertTrue(isinstance("tag", str | UnsetType))
        self.assertTrue(isinstance(Unset, str | UnsetType))


class CoalesceTest(TestCase):

    def testUnsetFallsBack(self):
        self.assertEqual(coalesce(Unset, "yaml"), "yaml")

    def testFalseyValuesPreserved(self):
        self.assertIsNone(coalesce(None, "yaml"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "yaml"), "")

    def testDefaultIsNone(self):
        self.assertIsNone(coalesce(Unset))


class RenameTest(TestCase):

    def testDirectForm(self):
        function = rename(lambda: None, "named")
        self.assertEqual(function.__name__, "named")
        self.assertEqual(function.__qualname__, "named")

    def testDecoratorForm(self):
        @rename("decorated")
        def function():
            pass
        self.assertEqual(function.__name__, "decorated")

    def testRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            rename(1, "name")

    def testRejectsNonStringName(self):
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)

    def testRejectsWrongArity(self):
        with self.assertRaises(TypeError):
            rename()


class MirrorTest(TestCase):

    def testContainersAreCopied(self):
        holder = Holder()
        items = holder.items
        items.append(4)
        self.assertEqual(holder.items, [1, [2, 3]])
        self.assertIsNot(holder.items, holder._items)

    def testScalarsPassThrough(self):
        self.assertEqual(Holder().label, "holder")

    def testReadOnly(self):
        with self.assertRaises(AttributeError):
            Holder().label = "other"

    def testRejectsNonString(self):
        with self.assertRaises(TypeError):
            mirror(1)


class OrdinalTest(TestCase):

    def testWords(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(10), "tenth")

    def testSuffixes(self):
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(24), "24th")

    def testTeens(self):
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(113), "113th")

    def testRejectsNonIntegers(self):
        with self.assertRaises(TypeError):
            ordinal(True)
        with self.assertRaises(TypeError):
            ordinal(1.0)


if __name__ == "__main__":
    unittest.main()
