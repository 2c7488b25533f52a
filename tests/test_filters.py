"""
Tests for filter and comparator resolution.
"""

import functools
import re
import sys

import pytest

from conftest import USER_DEFINED
from migration_backlog import ConfigurationError, PluginRegistry, resolve_comparator, resolve_filter
from migration_backlog.filters.resolution import declared_arity


class TestDeclaredArity:
    """Arity of user supplied callables."""

    def test_counts_required_positional_parameters(self):
        """Test counting required positional parameters."""
        assert declared_arity(lambda name: True) == 1
        assert declared_arity(lambda a, b: 0) == 2
        assert declared_arity(lambda name, flag=False: True) == 1

    def test_varargs_have_no_declared_arity(self):
        """Test that *args leaves the arity undeclared."""
        assert declared_arity(lambda *names: True) is None


class TestResolveFilter:
    """resolve_filter resolution order."""

    def test_compiled_pattern(self):
        """Test that a compiled pattern filters names."""
        predicate = resolve_filter(re.compile(r"^A"))
        assert [name for name in ["A1", "A2", "B1"] if predicate(name)] == ["A1", "A2"]

    def test_pattern_searches_anywhere(self):
        """Test that patterns match anywhere in the name."""
        predicate = resolve_filter(re.compile("logs"))
        assert predicate("app_logs_2024")

    def test_inline_pattern_string(self):
        """Test that a plain string is compiled as a pattern."""
        predicate = resolve_filter("^orders_")
        assert predicate("orders_2024")
        assert not predicate("customers")

    def test_invalid_inline_pattern(self):
        """Test that an invalid pattern is a configuration error."""
        with pytest.raises(ConfigurationError, match="Invalid filter pattern"):
            resolve_filter("orders_(")

    def test_one_argument_callable(self):
        """Test that a one argument callable is used as is."""
        def predicate(name):
            return name.endswith("_v2")

        assert resolve_filter(predicate) is predicate

    def test_callable_with_wrong_arity(self):
        """Test that a two argument callable is rejected as a filter."""
        with pytest.raises(ConfigurationError, match="exactly one argument"):
            resolve_filter(lambda a, b: True)

    @pytest.mark.parametrize("value", [42, None, ["orders"], {"name": "orders"}])
    def test_unsupported_types(self, value):
        """Test that other value types are rejected."""
        with pytest.raises(ConfigurationError, match="pattern, predicate, or module reference"):
            resolve_filter(value)

    def test_module_reference(self):
        """Test loading a filter from a module file."""
        predicate = resolve_filter(str(USER_DEFINED / "filters" / "skip_archives.py"))
        assert predicate("orders")
        assert not predicate("archive_orders")
        assert not predicate("orders_old")

    def test_missing_module_file(self, tmp_path):
        """Test that a missing module file is rejected."""
        with pytest.raises(ConfigurationError, match="not found"):
            resolve_filter(str(tmp_path / "missing.py"))

    def test_module_without_predicate(self, tmp_path):
        """Test that a module without a filter export is rejected."""
        module = tmp_path / "no_filter.py"
        module.write_text("VALUE = 1\n")

        with pytest.raises(ConfigurationError, match="does not export a predicate"):
            resolve_filter(str(module))

    def test_module_exporting_non_callable(self, tmp_path):
        """Test that a non-callable filter export is rejected."""
        module = tmp_path / "bad_filter.py"
        module.write_text("filter = 'orders'\n")

        with pytest.raises(ConfigurationError, match="does not export a predicate"):
            resolve_filter(str(module))

    def test_module_exporting_wrong_arity(self, tmp_path):
        """Test that a filter export with two arguments is rejected."""
        module = tmp_path / "two_args.py"
        module.write_text("def filter(a, b):\n    return True\n")

        with pytest.raises(ConfigurationError, match="exactly one argument"):
            resolve_filter(str(module))

    def test_module_failing_on_import(self, tmp_path):
        """Test that an import error becomes a configuration error."""
        module = tmp_path / "broken.py"
        module.write_text("raise RuntimeError('boom')\n")

        with pytest.raises(ConfigurationError, match="Failed to load module"):
            resolve_filter(str(module))

    def test_module_defining_dataclasses(self, tmp_path):
        """Test that a module can define dataclasses with postponed annotations."""
        module = tmp_path / "prefix_rule.py"
        module.write_text(
            "from __future__ import annotations\n"
            "from dataclasses import dataclass\n"
            "\n"
            "\n"
            "@dataclass\n"
            "class Rule:\n"
            "    prefix: str\n"
            "\n"
            "\n"
            "RULE = Rule('orders')\n"
            "\n"
            "\n"
            "def filter(name):\n"
            "    return name.startswith(RULE.prefix)\n"
        )

        predicate = resolve_filter(str(module))

        assert predicate("orders_x")
        assert not predicate("customers")

    def test_failed_module_is_not_left_registered(self, tmp_path):
        """Test that a module failing to load is not kept in sys.modules."""
        module = tmp_path / "half_loaded.py"
        module.write_text("raise RuntimeError('boom')\n")

        with pytest.raises(ConfigurationError):
            resolve_filter(str(module))

        assert "user_defined_half_loaded" not in sys.modules

    def test_registered_filter(self):
        """Test that a registered name resolves to its predicate."""
        registry = PluginRegistry()

        @registry.filter("only_orders")
        def only_orders(name):
            return name.startswith("orders")

        assert resolve_filter("only_orders", registry) is only_orders

    def test_unregistered_name_is_a_pattern(self):
        """Test that an unregistered name falls back to a pattern."""
        predicate = resolve_filter("only_orders", PluginRegistry())
        assert predicate("x_only_orders_y")
        assert not predicate("orders")


class TestResolveComparator:
    """resolve_comparator validation."""

    def test_two_argument_callable(self):
        """Test that a two argument callable is used as is."""
        def descending(a, b):
            return (a < b) - (a > b)

        assert resolve_comparator(descending) is descending

    def test_wrong_arity(self):
        """Test that a one argument comparator is rejected."""
        with pytest.raises(ConfigurationError, match="2 arguments"):
            resolve_comparator(lambda a: 0)

    def test_non_callable(self):
        """Test that a non-callable comparator is rejected."""
        with pytest.raises(ConfigurationError, match="2 arguments"):
            resolve_comparator(3)

    def test_module_reference(self):
        """Test loading a comparator from a module file."""
        comparator = resolve_comparator(str(USER_DEFINED / "comparators" / "newest_first.py"))
        names = ["orders_2023_01", "customers", "orders_2024_05", "archive"]

        assert sorted(names, key=functools.cmp_to_key(comparator)) == [
            "orders_2024_05", "orders_2023_01", "archive", "customers"
        ]

    def test_module_without_comparator(self, tmp_path):
        """Test that a module without a comparator export is rejected."""
        module = tmp_path / "empty.py"
        module.write_text("")

        with pytest.raises(ConfigurationError, match="does not export a comparator"):
            resolve_comparator(str(module))

    def test_registered_comparator(self):
        """Test that a registered name resolves to its comparator."""
        registry = PluginRegistry()
        registry.register_comparator("by_length", lambda a, b: len(a) - len(b))

        comparator = resolve_comparator("by_length", registry)
        assert comparator("ab", "abc") < 0

    def test_unknown_name(self):
        """Test that an unknown comparator name is rejected."""
        with pytest.raises(ConfigurationError, match="Unknown comparator"):
            resolve_comparator("by_length", PluginRegistry())


class TestPluginRegistry:
    """Explicit registration."""

    def test_list_available(self):
        """Test listing registered names in sorted order."""
        registry = PluginRegistry()
        registry.register_filter("b", lambda name: True)
        registry.register_filter("a", lambda name: True)
        registry.register_comparator("c", lambda a, b: 0)

        assert registry.list_available() == {"filters": ["a", "b"], "comparators": ["c"]}

    def test_rejects_non_callables(self):
        """Test that registering a non-callable fails."""
        with pytest.raises(TypeError):
            PluginRegistry().register_filter("x", "not callable")
