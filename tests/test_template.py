"""Tests for template rendering."""

import copy
import unittest

from topwatch.models import Coin
from topwatch.template import (
    as_display_string,
    get_member,
    is_truthy,
    render,
    resolve,
    to_value,
)


class TestValueHelpers(unittest.TestCase):
    def test_get_member_on_mapping(self):
        self.assertEqual(get_member({"a": 1}, "a"), 1)
        self.assertIsNone(get_member({"a": 1}, "b"))

    def test_get_member_on_non_mapping(self):
        self.assertIsNone(get_member([1, 2], "a"))
        self.assertIsNone(get_member("text", "a"))
        self.assertIsNone(get_member(None, "a"))

    def test_display_scalars(self):
        self.assertIsNone(as_display_string(None))
        self.assertEqual(as_display_string(True), "true")
        self.assertEqual(as_display_string(False), "false")
        self.assertEqual(as_display_string(42), "42")
        self.assertEqual(as_display_string(1.5), "1.5")
        self.assertEqual(as_display_string(2.0), "2")
        self.assertEqual(as_display_string("x"), "x")

    def test_display_containers_as_json(self):
        self.assertEqual(as_display_string([1, "a"]), '[1,"a"]')
        self.assertEqual(as_display_string({"a": 1}), '{"a":1}')

    def test_truthy(self):
        self.assertFalse(is_truthy(None))
        self.assertFalse(is_truthy(""))
        self.assertTrue(is_truthy("x"))
        self.assertTrue(is_truthy(0))
        self.assertTrue(is_truthy([]))
        self.assertTrue(is_truthy({}))

    def test_false_counts_as_present(self):
        self.assertTrue(is_truthy(False))

    def test_to_value_converts_records(self):
        coin = Coin(id=1, name="Bitcoin", symbol="BTC", rank=1)
        value = to_value({"coins": (coin,)})
        self.assertEqual(value["coins"][0]["symbol"], "BTC")
        self.assertIsInstance(value["coins"], list)


class TestResolve(unittest.TestCase):
    def test_empty_key(self):
        self.assertIsNone(resolve({"": 1}, None, ""))

    def test_root_lookup(self):
        self.assertEqual(resolve({"a": 1}, None, "a"), 1)

    def test_local_shadows_root(self):
        self.assertEqual(resolve({"a": 1}, {"a": 2}, "a"), 2)

    def test_falls_back_to_root(self):
        self.assertEqual(resolve({"a": 1}, {"b": 2}, "a"), 1)

    def test_non_mapping_local_ignored(self):
        self.assertEqual(resolve({"a": 1}, "element", "a"), 1)

    def test_local_null_shadows_root(self):
        self.assertIsNone(resolve({"a": 1}, {"a": None}, "a"))


class TestRender(unittest.TestCase):
    def test_escape(self):
        self.assertEqual(render("100%%", {}), "100%")
        self.assertEqual(render("100%%", {"x": 1}), "100%")

    def test_substitution(self):
        self.assertEqual(render("hi %name%", {"name": "Alice"}), "hi Alice")

    def test_key_whitespace_trimmed(self):
        self.assertEqual(render("hi % name %", {"name": "Alice"}), "hi Alice")

    def test_default_on_missing_or_empty(self):
        root = {"empty": ""}
        self.assertEqual(render("%missing|d%", root), "d")
        self.assertEqual(render("%empty|d%", root), "d")

    def test_default_kept_verbatim(self):
        self.assertEqual(render("[%missing| n/a %]", {}), "[ n/a ]")

    def test_missing_without_default(self):
        self.assertEqual(render("a%missing%b", {}), "ab")

    def test_empty_key_takes_default(self):
        self.assertEqual(render("%|d%", {"": "x"}), "d")

    def test_numbers_and_booleans(self):
        root = {"n": 42, "f": 1.25, "t": True}
        self.assertEqual(render("%n% %f% %t%", root), "42 1.25 true")

    def test_conditional(self):
        root = {"flag": True, "blank": ""}
        self.assertEqual(render("%IF flag%yes%END_IF%%IF blank%no%END_IF%", root), "yes")

    def test_conditional_key_trimmed(self):
        self.assertEqual(render("%IF  flag %yes%END_IF%", {"flag": "1"}), "yes")

    def test_conditional_zero_and_empty_list(self):
        self.assertEqual(render("%IF n%x%END_IF%", {"n": 0}), "x")
        self.assertEqual(render("%IF xs%x%END_IF%", {"xs": []}), "x")

    def test_conditional_false_renders(self):
        self.assertEqual(render("%IF flag%x%END_IF%", {"flag": False}), "x")

    def test_conditional_missing(self):
        self.assertEqual(render("a%IF missing%x%END_IF%b", {}), "ab")

    def test_each_order_and_local_scope(self):
        root = {"items": [{"name": "BTC"}, {"name": "ETH"}]}
        self.assertEqual(render("%EACH items%[%name%]%END_EACH%", root), "[BTC][ETH]")

    def test_each_local_shadows_root(self):
        root = {"name": "outer", "items": [{"name": "inner"}]}
        self.assertEqual(render("%EACH items%%name%%END_EACH%", root), "inner")

    def test_each_sees_root_fields(self):
        root = {"convert": "USD", "items": [{"name": "A"}]}
        self.assertEqual(render("%EACH items%%name% %convert%%END_EACH%", root), "A USD")

    def test_each_non_sequence(self):
        self.assertEqual(render("%EACH items%X%END_EACH%", {"items": "not-a-list"}), "")
        self.assertEqual(render("%EACH items%X%END_EACH%", {}), "")

    def test_each_non_mapping_elements(self):
        root = {"items": ["x", "y"]}
        self.assertEqual(render("%EACH items%[%name|?%]%END_EACH%", root), "[?][?]")

    def test_each_null_field_shadows_root(self):
        root = {"name": "outer", "items": [{"name": None}]}
        self.assertEqual(render("%EACH items%%name|-%%END_EACH%", root), "-")

    def test_if_inside_each_uses_element(self):
        root = {"items": [{"name": "A", "cap": 1}, {"name": "B"}]}
        template = "%EACH items%%name%%IF cap%*%END_IF%;%END_EACH%"
        self.assertEqual(render(template, root), "A*;B;")

    def test_each_inside_if(self):
        root = {"items": [{"name": "A"}]}
        template = "%IF items%<%EACH items%%name%%END_EACH%>%END_IF%"
        self.assertEqual(render(template, root), "<A>")

    def test_same_kind_nesting_ends_at_first_closer(self):
        root = {"a": 1, "b": 1}
        template = "%IF a%1%IF b%2%END_IF%3%END_IF%"
        self.assertEqual(render(template, root), "1%IF b%23")

    def test_plain_text_unchanged(self):
        text = "No directives here.\nJust text, 100 percent."
        self.assertEqual(render(text, {"a": 1}), text)
        self.assertEqual(render("", {}), "")

    def test_unterminated_percent(self):
        self.assertEqual(render("50% off", {}), "50% off")

    def test_unterminated_if_tag(self):
        self.assertEqual(render("x %IF flag", {"flag": True}), "x %IF flag")

    def test_unterminated_each_block(self):
        self.assertEqual(render("%EACH items%X", {"items": [1]}), "%EACH items%X")

    def test_stray_end_marker(self):
        self.assertEqual(render("a%END_EACH%b", {}), "ab")

    def test_records_in_context(self):
        coins = [Coin(id=1, name="Bitcoin", symbol="BTC", rank=1)]
        self.assertEqual(render("%EACH coins%%symbol%%END_EACH%", {"coins": coins}), "BTC")

    def test_context_not_mutated(self):
        root = {"name": "Alice", "items": [{"name": "BTC"}], "empty": ""}
        snapshot = copy.deepcopy(root)
        render("%name% %EACH items%%name%%END_EACH% %IF empty%x%END_IF%", root)
        self.assertEqual(root, snapshot)

    def test_combined(self):
        root = {
            "name": "Alice",
            "items": [{"name": "BTC"}, {"name": "ETH"}],
            "empty": "",
        }
        template = (
            "hi %name|X% %% %missing|d% %IF name%ok%END_IF%"
            "%IF empty%bad%END_IF% %EACH items%[%name%]%END_EACH%"
        )
        self.assertEqual(render(template, root), "hi Alice % d ok [BTC][ETH]")


if __name__ == "__main__":
    unittest.main()
