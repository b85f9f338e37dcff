"""Tests for the membrane proxy machinery and its consistency checks."""

import pytest

from reactive_membrane import ObjectModelError, PropertyDescriptor, reflect
from reactive_membrane import objectmodel as om
from reactive_membrane.membrane import RecordProxy, SequenceProxy, create_proxy, is_proxy, unwrap


class _Handler:
    """Plain pass-through handler over a dict."""

    def __init__(self, target):
        self.original_target = target

    def get(self, shadow, key):
        return self.original_target[key]

    def set(self, shadow, key, value):
        self.original_target[key] = value
        return True

    def delete_property(self, shadow, key):
        self.original_target.pop(key, None)
        return True

    def has(self, shadow, key):
        return key in self.original_target

    def own_keys(self, shadow):
        return list(self.original_target)

    def is_extensible(self, shadow):
        return om.is_extensible(shadow)

    def prevent_extensions(self, shadow):
        om.prevent_extensions(shadow)
        return True

    def get_prototype_of(self, shadow):
        return dict

    def set_prototype_of(self, shadow, prototype):
        return False

    def get_own_property_descriptor(self, shadow, key):
        if key in self.original_target:
            return PropertyDescriptor(self.original_target[key])
        return None

    def define_property(self, shadow, key, descriptor):
        self.original_target[key] = descriptor.value
        return True

    def apply(self, shadow, args, kwargs):
        return ("called", args, kwargs)

    def construct(self, shadow, args, kwargs):
        return ("constructed", args, kwargs)


def _locked_shadow(**values):
    shadow = {}
    for key, value in values.items():
        om.define_property(shadow, key, PropertyDescriptor(value, writable=False, configurable=False))
    return shadow


class TestDispatch:
    def test_record_protocol(self):
        target = {"a": 1}
        p = create_proxy({}, _Handler(target))
        assert isinstance(p, RecordProxy)
        assert p["a"] == 1
        p["b"] = 2
        assert target == {"a": 1, "b": 2}
        del p["a"]
        assert dict(p) == {"b": 2}
        assert "b" in p
        assert len(p) == 1

    def test_kind_follows_shadow(self):
        assert isinstance(create_proxy([], _Handler({})), SequenceProxy)

    def test_unwrap(self):
        target = {}
        p = create_proxy({}, _Handler(target))
        assert is_proxy(p)
        assert unwrap(p) is target
        assert unwrap(target) is target
        assert unwrap(3) == 3

    def test_call_and_construct_go_to_handler(self):
        p = create_proxy({}, _Handler({}))
        assert p(1, x=2) == ("called", (1,), {"x": 2})
        assert reflect.construct(p, 3) == ("constructed", (3,), {})

    def test_attributes_are_read_only(self):
        p = create_proxy({}, _Handler({}))
        with pytest.raises(AttributeError):
            p.anything = 1

    def test_unhashable(self):
        p = create_proxy({}, _Handler({}))
        with pytest.raises(TypeError):
            hash(p)


class TestConsistencyChecks:
    def test_falsish_set_prototype_of(self):
        p = create_proxy({}, _Handler({}))
        with pytest.raises(ObjectModelError):
            reflect.set_prototype_of(p, list)

    def test_read_only_shadow_value_must_match(self):
        p = create_proxy(_locked_shadow(a=1), _Handler({"a": 2}))
        with pytest.raises(ObjectModelError):
            p["a"]

    def test_read_only_shadow_value_matches(self):
        p = create_proxy(_locked_shadow(a=1), _Handler({"a": 1}))
        assert p["a"] == 1

    def test_cannot_report_non_configurable_missing_on_shadow(self):
        class Lying(_Handler):
            def get_own_property_descriptor(self, shadow, key):
                return PropertyDescriptor(1, configurable=False)

        p = create_proxy({}, Lying({"a": 1}))
        with pytest.raises(ObjectModelError):
            reflect.get_own_property_descriptor(p, "a")

    def test_cannot_hide_non_configurable_shadow_property(self):
        p = create_proxy(_locked_shadow(a=1), _Handler({}))
        with pytest.raises(ObjectModelError):
            reflect.get_own_property_descriptor(p, "a")
        with pytest.raises(ObjectModelError):
            "a" in p
        with pytest.raises(ObjectModelError):
            reflect.own_keys(p)

    def test_cannot_delete_non_configurable_shadow_property(self):
        p = create_proxy(_locked_shadow(a=1), _Handler({"a": 1}))
        with pytest.raises(ObjectModelError):
            del p["a"]

    def test_extensibility_must_agree(self):
        class Lying(_Handler):
            def is_extensible(self, shadow):
                return False

        p = create_proxy({}, Lying({}))
        with pytest.raises(ObjectModelError):
            reflect.is_extensible(p)

    def test_prevent_extensions_must_lock_shadow(self):
        class Lying(_Handler):
            def prevent_extensions(self, shadow):
                return True

        p = create_proxy({}, Lying({}))
        with pytest.raises(ObjectModelError):
            reflect.prevent_extensions(p)

    def test_no_new_properties_on_non_extensible_shadow(self):
        shadow = {}
        om.prevent_extensions(shadow)
        p = create_proxy(shadow, _Handler({"a": 1}))
        with pytest.raises(ObjectModelError):
            reflect.get_own_property_descriptor(p, "a")

    def test_non_configurable_define_must_reach_shadow(self):
        p = create_proxy({}, _Handler({}))
        with pytest.raises(ObjectModelError):
            reflect.define_property(p, "a", PropertyDescriptor(1, configurable=False))

    def test_prototype_of_non_extensible_shadow_is_fixed(self):
        class Lying(_Handler):
            def get_prototype_of(self, shadow):
                return list

        shadow = {}
        om.prevent_extensions(shadow)
        p = create_proxy(shadow, Lying({}))
        with pytest.raises(ObjectModelError):
            reflect.get_prototype_of(p)
