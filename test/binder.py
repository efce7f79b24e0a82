"""
Tests for the flag binder.

Scope
- locations and nil-layer allocation (resolve);
- bindings: type-preserving write-back, sequence reset-then-append, defaults;
- the binder: walk-order registration, duplicate detection before allocation.
"""
import unittest
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Annotated, Optional
from unittest import TestCase

from flagmaker.binder import *
from flagmaker.faults import *
from flagmaker.flagset import FlagSet
from flagmaker.kinds import *
from flagmaker.walker import Indirection, Layer, walk


class Port(int):
    pass


class Timeout(timedelta):
    pass


class Hosts(list[str]):
    pass


@dataclass
class Endpoint:
    host: str = "localhost"
    port: Annotated[Port, Kind.UINT16] = Port(80)


@dataclass
class Settings:
    endpoint: Endpoint = field(default_factory=Endpoint)
    timeout: Timeout = Timeout(seconds=5)
    levels: list[int] = field(default_factory=lambda: [11, 12])
    hosts: Hosts = field(default_factory=Hosts)
    verbose: bool = False


@dataclass
class Chains:
    weights: Ref[Ref[list[float]]] | None = None
    label: Optional[str] = None
    remote: Ref[Endpoint] | None = None
    backup: Endpoint | None = None


@dataclass
class Twins:
    first: Ref[Endpoint] | None = None
    second: Ref[Endpoint] | None = None


@dataclass
class Blanks:
    timeout: timedelta = None
    ratio: float32 = None
    count: int = None
    label: str = None
    verbose: bool = None


class LocationTest(TestCase):

    def testAttributeLocation(self):
        endpoint = Endpoint()
        location = AttributeLocation(endpoint, "host")
        self.assertEqual(location.get(), "localhost")
        location.set("remote")
        self.assertEqual(endpoint.host, "remote")

    def testReferenceLocation(self):
        ref = Ref(1)
        location = ReferenceLocation(ref)
        location.set(2)
        self.assertEqual(ref.value, 2)
        self.assertEqual(location.get(), 2)


class ResolveTest(TestCase):

    def testAllocatesReferenceChain(self):
        chains = Chains()
        layers = (Layer(Indirection.REFERENCE, Ref[list[float]]), Layer(Indirection.REFERENCE, list[float]))
        location = resolve(AttributeLocation(chains, "weights"), layers)
        self.assertEqual(chains.weights, Ref(Ref([])))
        location.set([1.5])
        self.assertEqual(deref(chains.weights), [1.5])

    def testAllocatesOptional(self):
        chains = Chains()
        location = resolve(AttributeLocation(chains, "label"), (Layer(Indirection.OPTIONAL, str),))
        self.assertEqual(chains.label, "")
        location.set("named")
        self.assertEqual(chains.label, "named")

    def testKeepsExistingStorage(self):
        inner = Ref([2.0])
        chains = Chains(weights=Ref(inner))
        layers = (Layer(Indirection.REFERENCE, Ref[list[float]]), Layer(Indirection.REFERENCE, list[float]))
        location = resolve(AttributeLocation(chains, "weights"), layers)
        self.assertIs(location.ref, inner)
        self.assertEqual(location.get(), [2.0])


class BindingTest(TestCase):

    def testScalar(self):
        endpoint = Endpoint()
        binding = Binding("host", Kind.STRING, AttributeLocation(endpoint, "host"))
        self.assertEqual(binding.default, "localhost")
        binding.set("example.com")
        self.assertEqual(endpoint.host, "example.com")
        self.assertEqual(binding.get(), "example.com")
        self.assertEqual(binding.default, "localhost")

    def testConstructorPreserved(self):
        endpoint = Endpoint()
        binding = Binding("port", Kind.UINT16, AttributeLocation(endpoint, "port"), constructor=Port)
        binding.set("8080")
        self.assertEqual(endpoint.port, 8080)
        self.assertIsInstance(endpoint.port, Port)

    def testDurationSubclassPreserved(self):
        settings = Settings()
        binding = Binding("timeout", Kind.DURATION, AttributeLocation(settings, "timeout"), constructor=Timeout)
        self.assertEqual(binding.default, "5s")
        binding.set("1m30s")
        self.assertEqual(settings.timeout, timedelta(seconds=90))
        self.assertIsInstance(settings.timeout, Timeout)

    def testInvalidLeavesStorage(self):
        endpoint = Endpoint()
        binding = Binding("port", Kind.UINT16, AttributeLocation(endpoint, "port"), constructor=Port)
        with self.assertRaises(ValueError):
            binding.set("65536")
        self.assertEqual(endpoint.port, 80)

    def testSequenceResetsThenAppends(self):
        settings = Settings()
        original = settings.levels
        binding = Binding("levels", Kind.INT_LIST, AttributeLocation(settings, "levels"), constructor=list, element=int)
        self.assertEqual(binding.default, "[11, 12]")
        binding.set("5")
        self.assertEqual(settings.levels, [5])
        binding.set("6")
        self.assertEqual(settings.levels, [5, 6])
        self.assertEqual(original, [11, 12])

    def testSequenceFailureKeepsCommits(self):
        settings = Settings()
        binding = Binding("levels", Kind.INT_LIST, AttributeLocation(settings, "levels"), constructor=list, element=int)
        with self.assertRaises(ValueError):
            binding.set("abc")
        self.assertEqual(settings.levels, [11, 12])
        binding.set("10")
        with self.assertRaises(ValueError):
            binding.set("abc")
        self.assertEqual(settings.levels, [10])

    def testSequenceSubclassPreserved(self):
        settings = Settings()
        binding = Binding("hosts", Kind.STRING_LIST, AttributeLocation(settings, "hosts"), constructor=Hosts, element=str)
        binding.set("h1")
        binding.set("h2")
        self.assertEqual(settings.hosts, ["h1", "h2"])
        self.assertIsInstance(settings.hosts, Hosts)

    def testReset(self):
        settings = Settings()
        binding = Binding("levels", Kind.INT_LIST, AttributeLocation(settings, "levels"), constructor=list, element=int)
        binding.set("1")
        binding.reset()
        binding.set("2")
        self.assertEqual(settings.levels, [2])

    def testBoolean(self):
        settings = Settings()
        binding = Binding("verbose", Kind.BOOL, AttributeLocation(settings, "verbose"))
        self.assertTrue(binding.boolean)
        self.assertEqual(binding.default, "false")


class BinderTest(TestCase):

    def testNamesInWalkOrder(self):
        flagset = bind(walk(Settings()))
        self.assertEqual(list(flagset), [
            "endpoint.host",
            "endpoint.port",
            "timeout",
            "levels",
            "hosts",
            "verbose",
        ])

    def testFlattenedNames(self):
        flagset = bind(walk(Settings()), flatten=True)
        self.assertIn("host", flagset)
        self.assertIn("port", flagset)

    def testKinds(self):
        flagset = bind(walk(Settings()))
        self.assertIs(flagset["endpoint.port"].kind, Kind.UINT16)
        self.assertIs(flagset["levels"].kind, Kind.INT_LIST)

    def testAllocatesAtBindTime(self):
        chains = Chains()
        flagset = bind(walk(chains))
        self.assertEqual(chains.weights, Ref(Ref([])))
        self.assertEqual(chains.label, "")
        self.assertEqual(chains.remote, Ref(Endpoint()))
        self.assertEqual(chains.backup, Endpoint())
        flagset["remote.host"].set("far")
        self.assertEqual(deref(chains.remote).host, "far")

    def testNilScalarDefaults(self):
        blanks = Blanks()
        flagset = bind(walk(blanks))
        self.assertEqual(
            {name: flagset[name].default for name in flagset},
            {"timeout": "", "ratio": "", "count": "", "label": "", "verbose": "false"},
        )
        flagset["timeout"].set("2s")
        flagset["ratio"].set("0.5")
        self.assertEqual(blanks.timeout, timedelta(seconds=2))
        self.assertEqual(blanks.ratio, 0.5)
        self.assertIsNone(blanks.count)

    def testDuplicateLeavesTargetUntouched(self):
        twins = Twins()
        with self.assertRaises(DuplicateFlagNameError) as context:
            bind(walk(twins), flatten=True)
        self.assertIn("flag redefined: host", str(context.exception))
        self.assertIs(context.exception.code, FaultCode.DUPLICATE_FLAG_NAME)
        self.assertEqual(twins, Twins())

    def testNamespacedTwinsAreDistinct(self):
        flagset = bind(walk(Twins()))
        self.assertEqual(list(flagset), ["first.host", "first.port", "second.host", "second.port"])

    def testDuplicateAgainstExistingFlagSet(self):
        flagset = bind(walk(Endpoint()))
        endpoint = Endpoint()
        with self.assertRaises(DuplicateFlagNameError):
            bind(walk(endpoint), flagset)

    def testExplicitFlagSet(self):
        flagset = FlagSet("demo")
        self.assertIs(bind(walk(Endpoint()), flagset), flagset)
        self.assertEqual(len(flagset), 2)

    def testBinderOptions(self):
        self.assertTrue(Binder(flatten=True).flatten)
        with self.assertRaises(TypeError):
            Binder(flatten="yes")


if __name__ == "__main__":
    unittest.main()
