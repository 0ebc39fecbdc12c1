import inspect
import unittest
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

import tests.test_postponed_helpers as postponed
import tests.test_registry_helpers as helpers
from provisio.errors import (
    CyclicDependencyError,
    ServiceNotInstantiableError,
    ServiceNotRegisteredError,
    ServiceProvisionError,
    UnresolvableParameterError,
)
from provisio.metadata import (
    ConstructorSpec,
    IntrospectionError,
    Named,
    ParameterSpec,
    SignatureInspector,
)
from provisio.model import Lifecycle, key_name
from provisio.provider import ServiceProvider
from provisio.registry import initialize

HELPERS = "tests.test_registry_helpers"


class ProviderTestCase(unittest.TestCase):
    def setUp(self):
        self.registry = initialize()
        self.provider = ServiceProvider(self.registry)
        helpers.Logger.instances = 0

    def test_not_registered(self) -> None:
        with self.assertRaises(ServiceNotRegisteredError) as ctx:
            self.provider.get_service(helpers.Logger)
        self.assertEqual(key_name(helpers.Logger), ctx.exception.key)
        self.assertIn(key_name(helpers.Logger), str(ctx.exception))

    def test_not_registered_is_lookup_error(self) -> None:
        with self.assertRaises(LookupError):
            self.provider.get_service("missing")

    def test_abstraction_without_implementation(self) -> None:
        self.registry.add(helpers.AbstractRepository, helpers.AbstractRepository)

        with self.assertRaises(ServiceNotInstantiableError) as ctx:
            self.provider.get_service(helpers.AbstractRepository)
        self.assertIn("registered without a concrete implementation", str(ctx.exception))
        self.assertEqual(key_name(helpers.AbstractRepository), ctx.exception.target)

    def test_protocol_without_implementation(self) -> None:
        self.registry.add(helpers.Greeter, helpers.Greeter)

        with self.assertRaises(ServiceNotInstantiableError) as ctx:
            self.provider.get_service(helpers.Greeter)
        self.assertIn("registered without a concrete implementation", str(ctx.exception))

    def test_abstract_concrete(self) -> None:
        self.registry.add("repository", helpers.AbstractRepository)

        with self.assertRaises(ServiceNotInstantiableError) as ctx:
            self.provider.get_service("repository")
        self.assertIn("abstract or a protocol", str(ctx.exception))
        self.assertNotIn("registered without", str(ctx.exception))

    def test_no_constructor(self) -> None:
        self.registry.add("plain", helpers.NoConstructor)

        self.assertIsInstance(self.provider.get_service("plain"), helpers.NoConstructor)

    def test_get_by_abstraction(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(helpers.AbstractRepository, helpers.SqlRepository)

        repository = self.provider.get_service(helpers.AbstractRepository)

        self.assertIsInstance(repository, helpers.SqlRepository)
        self.assertIsInstance(repository.logger, helpers.Logger)

    def test_get_by_concrete(self) -> None:
        self.registry.add(helpers.AbstractRepository, helpers.MemoryRepository)

        by_concrete = self.provider.get_service(helpers.MemoryRepository)
        by_abstraction = self.provider.get_service(helpers.AbstractRepository)

        self.assertIsInstance(by_concrete, helpers.MemoryRepository)
        self.assertIs(by_concrete, by_abstraction)

    def test_dotted_target(self) -> None:
        self.registry.add("logger", f"{HELPERS}.Logger")

        logger = self.provider.get_service("logger")

        self.assertIsInstance(logger, helpers.Logger)
        # the dotted path is also the class identifier, so it acts as an alias
        self.assertIs(logger, self.provider.get_service(helpers.Logger))

    def test_missing_dotted_target(self) -> None:
        self.registry.add("logger", "nowhere.to.be.Found")

        with self.assertRaises(ServiceNotInstantiableError) as ctx:
            self.provider.get_service("logger")
        self.assertIsInstance(ctx.exception.__cause__, IntrospectionError)
        self.assertIn("nowhere.to.be.Found", str(ctx.exception))

    def test_scoped_same_instance(self) -> None:
        self.registry.add(helpers.Logger)

        first = self.provider.get_service(helpers.Logger)
        second = self.provider.get_service(helpers.Logger)

        self.assertIs(first, second)
        self.assertEqual(1, helpers.Logger.instances)
        self.assertIs(first, self.registry.get(helpers.Logger).instance)

    def test_ephemeral_new_instance(self) -> None:
        self.registry.add(helpers.Logger, lifecycle=Lifecycle.EPHEMERAL)

        first = self.provider.get_service(helpers.Logger)
        second = self.provider.get_service(helpers.Logger)

        self.assertIsNot(first, second)
        self.assertEqual(2, helpers.Logger.instances)
        self.assertIsNone(self.registry.get(helpers.Logger).instance)

    def test_preseeded_instance(self) -> None:
        self.registry.add(helpers.Logger)
        logger = helpers.Logger()
        self.registry.set_object(helpers.Logger, logger)

        self.assertIs(logger, self.provider.get_service(helpers.Logger))

    def test_logger_service_scenario(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(helpers.Service)

        service = self.provider.get_service(helpers.Service)

        self.assertIsInstance(service.logger, helpers.Logger)
        self.assertEqual(1, helpers.Logger.instances)
        self.assertIs(service, self.provider.get_service(helpers.Service))
        self.assertIs(service.logger, self.provider.get_service(helpers.Logger))
        self.assertEqual(1, helpers.Logger.instances)

    def test_ephemeral_dependency(self) -> None:
        self.registry.add(helpers.Logger, lifecycle=Lifecycle.EPHEMERAL)
        self.registry.add(helpers.Service, lifecycle=Lifecycle.EPHEMERAL)

        first = self.provider.get_service(helpers.Service)
        second = self.provider.get_service(helpers.Service)

        self.assertIsNot(first, second)
        self.assertIsNot(first.logger, second.logger)

    def test_primitive_with_default(self) -> None:
        self.registry.add(helpers.WithPrimitiveDefault)

        self.assertEqual(123, self.provider.get_service(helpers.WithPrimitiveDefault).id)

    def test_nullable_primitive(self) -> None:
        self.registry.add(helpers.WithNullablePrimitive)

        self.assertIsNone(self.provider.get_service(helpers.WithNullablePrimitive).id)

    def test_unresolvable_untyped(self) -> None:
        self.registry.add(helpers.WithUnresolvable)

        with self.assertRaises(UnresolvableParameterError) as ctx:
            self.provider.get_service(helpers.WithUnresolvable)
        self.assertEqual("id", ctx.exception.parameter)
        self.assertEqual(key_name(helpers.WithUnresolvable), ctx.exception.target)
        self.assertIn("'id'", str(ctx.exception))
        self.assertIn(key_name(helpers.WithUnresolvable), str(ctx.exception))

    def test_unresolvable_primitive(self) -> None:
        self.registry.add(helpers.WithRequiredPrimitive)

        with self.assertRaises(ServiceProvisionError):
            self.provider.get_service(helpers.WithRequiredPrimitive)

    def test_dependency_with_default(self) -> None:
        self.registry.add(helpers.WithDependencyDefault)

        self.assertIsNone(self.provider.get_service(helpers.WithDependencyDefault).dep)

    def test_registered_dependency_beats_default(self) -> None:
        self.registry.add(helpers.AbstractRepository, helpers.MemoryRepository)
        self.registry.add(helpers.WithDependencyDefault)

        instance = self.provider.get_service(helpers.WithDependencyDefault)

        self.assertIsInstance(instance.dep, helpers.MemoryRepository)

    def test_unregistered_dependency(self) -> None:
        self.registry.add(helpers.NeedsUnregistered)

        with self.assertRaises(ServiceNotRegisteredError) as ctx:
            self.provider.get_service(helpers.NeedsUnregistered)
        self.assertEqual(key_name(helpers.Unregistered), ctx.exception.key)

    def test_failure_is_not_cached(self) -> None:
        self.registry.add(helpers.NeedsUnregistered)

        with self.assertRaises(ServiceNotRegisteredError):
            self.provider.get_service(helpers.NeedsUnregistered)
        self.assertIsNone(self.registry.get(helpers.NeedsUnregistered).instance)

        self.registry.add(helpers.Unregistered)
        instance = self.provider.get_service(helpers.NeedsUnregistered)
        self.assertIsInstance(instance.dep, helpers.Unregistered)

    def test_union_prefers_first_service(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(helpers.Service)
        self.registry.add(helpers.WithUnionDependency)

        instance = self.provider.get_service(helpers.WithUnionDependency)

        self.assertIsInstance(instance.value, helpers.Logger)

    def test_union_of_primitives(self) -> None:
        self.registry.add(helpers.WithPrimitiveUnion)

        self.assertEqual(7, self.provider.get_service(helpers.WithPrimitiveUnion).value)

    def test_unknown_forward_reference(self) -> None:
        self.registry.add(helpers.WithUnknownHint)

        with self.assertRaises(ServiceNotRegisteredError) as ctx:
            self.provider.get_service(helpers.WithUnknownHint)
        self.assertEqual("DoesNotExist", ctx.exception.key)

    def test_postponed_annotations(self) -> None:
        self.registry.add(postponed.Clock)
        self.registry.add(postponed.Billing)

        billing = self.provider.get_service(postponed.Billing)

        self.assertIs(self.provider.get_service(postponed.Clock), billing.clock)
        self.assertIsNone(billing.level)
        self.assertIsNone(billing.price)
        self.assertEqual("invoice", billing.label)

    def test_positional_only(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(helpers.WithPositionalOnly)

        instance = self.provider.get_service(helpers.WithPositionalOnly)

        self.assertIsInstance(instance.logger, helpers.Logger)
        self.assertEqual(3, instance.level)

    def test_variadic_skipped(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(helpers.WithVariadic)

        instance = self.provider.get_service(helpers.WithVariadic)

        self.assertEqual((), instance.args)
        self.assertEqual({}, instance.kwargs)

    def test_cycle(self) -> None:
        self.registry.add(helpers.CycleA)
        self.registry.add(helpers.CycleB)

        with self.assertRaises(CyclicDependencyError) as ctx:
            self.provider.get_service(helpers.CycleA)
        self.assertEqual(
            (key_name(helpers.CycleA), key_name(helpers.CycleB), key_name(helpers.CycleA)),
            ctx.exception.path,
        )
        self.assertIsNone(self.registry.get(helpers.CycleA).instance)

        # the provider is usable after a failed resolution
        self.registry.add(helpers.Logger)
        self.assertIsInstance(self.provider.get_service(helpers.Logger), helpers.Logger)

    def test_reset_after_resolution(self) -> None:
        self.registry.add(helpers.RequestState)
        state = self.provider.get_service(helpers.RequestState)
        state.state = "dirty"

        self.registry.reset_all()

        self.assertEqual("clean", state.state)
        self.assertIs(state, self.provider.get_service(helpers.RequestState))


class FactoryTestCase(unittest.TestCase):
    def setUp(self):
        self.registry = initialize({"sender": "noreply@example.com"})
        self.provider = ServiceProvider(self.registry)

    def test_factory(self) -> None:
        self.registry.add("logger", lambda provider: helpers.Logger())

        self.assertIsInstance(self.provider.get_service("logger"), helpers.Logger)

    def test_factory_receives_provider(self) -> None:
        self.registry.add(helpers.Logger)
        self.registry.add(
            "mailer",
            lambda provider: helpers.Mailer(
                provider.get_service(helpers.Logger), provider.config["sender"]
            ),
        )

        mailer = self.provider.get_service("mailer")

        self.assertIs(self.provider.get_service(helpers.Logger), mailer.logger)
        self.assertEqual("noreply@example.com", mailer.sender)

    def test_scoped_factory_called_once(self) -> None:
        calls = []

        def factory(provider):
            calls.append(provider)
            return object()

        self.registry.add("thing", factory)

        self.assertIs(self.provider.get_service("thing"), self.provider.get_service("thing"))
        self.assertEqual([self.provider], calls)

    def test_scoped_factory_returning_none(self) -> None:
        calls = []

        def factory(provider):
            calls.append(provider)

        self.registry.add("nothing", factory)

        self.assertIsNone(self.provider.get_service("nothing"))
        self.assertIsNone(self.provider.get_service("nothing"))
        self.assertEqual(1, len(calls))
        self.assertTrue(self.registry.get("nothing").cached)

    def test_ephemeral_factory(self) -> None:
        self.registry.add("thing", lambda provider: object(), Lifecycle.EPHEMERAL)

        self.assertIsNot(self.provider.get_service("thing"), self.provider.get_service("thing"))

    def test_factory_cycle(self) -> None:
        self.registry.add("loop", lambda provider: provider.get_service("loop"))

        with self.assertRaises(CyclicDependencyError):
            self.provider.get_service("loop")


class _RecordingInspector(SignatureInspector):
    """Describes Service by hand and records every class it is asked about."""

    def __init__(self) -> None:
        self.described: List[type] = []

    def constructor(self, cls: type) -> ConstructorSpec:
        self.described.append(cls)
        if cls is not helpers.Service:
            return ConstructorSpec(cls)
        param = ParameterSpec(
            name="logger",
            kind=inspect.Parameter.POSITIONAL_OR_KEYWORD,
            annotation=Named(key_name(helpers.Logger), helpers.Logger),
        )
        return ConstructorSpec(cls, (param,))


class InspectorTestCase(unittest.TestCase):
    def test_custom_inspector(self) -> None:
        registry = initialize()
        registry.add(helpers.Logger)
        registry.add("service", helpers.Service)
        inspector = _RecordingInspector()
        provider = ServiceProvider(registry, inspector=inspector)

        service = provider.get_service("service")

        self.assertIsInstance(service.logger, helpers.Logger)
        self.assertEqual([helpers.Service, helpers.Logger], inspector.described)


class ConcurrencyTestCase(unittest.TestCase):
    def test_concurrent_lazy_init(self) -> None:
        """Scoped services are built once even when first requested concurrently."""
        registry = initialize()
        provider = ServiceProvider(registry)
        n_services = 50
        queries_per_service = 4
        keys = [f"service_{i}" for i in range(n_services)]
        for key in keys:
            registry.add(key, lambda p: object())

        with ThreadPoolExecutor(max_workers=queries_per_service) as executor:
            futures = [
                executor.submit(provider.get_service, keys[i % n_services])
                for i in range(n_services * queries_per_service)
            ]
            results = [future.result() for future in as_completed(futures)]

        counter = Counter(map(id, results))
        assert all(count == queries_per_service for count in counter.values())
        assert len(counter) == n_services


if __name__ == "__main__":
    unittest.main()
