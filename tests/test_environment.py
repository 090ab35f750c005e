import pytest
from oxypy.interpreter import Environment
from oxypy.errors import OxyNameError, OxyRuntimeError


class TestLookup:
    def test_define_and_get(self):
        env = Environment()
        env.define("x", 1)
        assert env.get("x") == 1

    def test_missing_name(self):
        with pytest.raises(OxyNameError) as exc:
            Environment().get("nope")
        assert exc.value.name == "nope"

    def test_get_local_reports_presence(self):
        env = Environment()
        env.define("u", None)
        assert env.get_local("u") == (None, True)
        assert env.get_local("v") == (None, False)

    def test_lookup_walks_parents(self):
        root = Environment()
        root.define("x", 1)
        inner = root.push_scope().push_scope()
        assert inner.get("x") == 1

    def test_shadowing(self):
        root = Environment()
        root.define("x", 1)
        inner = root.push_scope()
        inner.define("x", 2)
        assert inner.get("x") == 2
        assert root.get("x") == 1

    def test_redefine_in_same_scope(self):
        env = Environment()
        env.define("x", 1)
        env.define("x", "one")
        assert env.get("x") == "one"


class TestAssign:
    def test_updates_nearest_binding(self):
        root = Environment()
        root.define("x", 1)
        inner = root.push_scope()
        inner.assign("x", 5)
        assert root.get("x") == 5
        assert "x" not in inner.vars

    def test_updates_shadowing_binding_only(self):
        root = Environment()
        root.define("x", 1)
        inner = root.push_scope()
        inner.define("x", 2)
        inner.assign("x", 3)
        assert inner.get("x") == 3
        assert root.get("x") == 1

    def test_undeclared_raises(self):
        env = Environment().push_scope()
        with pytest.raises(OxyNameError):
            env.assign("y", 1)

    def test_undeclared_declares_in_innermost(self):
        root = Environment()
        inner = root.push_scope()
        inner.assign("y", 1, declare_missing=True)
        assert inner.vars == {"y": 1}
        assert root.vars == {}

    def test_set_existing(self):
        env = Environment()
        assert env.set_existing("x", 1) is False
        env.define("x", 0)
        assert env.set_existing("x", 1) is True
        assert env.get("x") == 1


class TestScopes:
    def test_push_links_parent(self):
        root = Environment()
        child = root.push_scope()
        assert child.parent is root

    def test_pop_returns_parent(self):
        root = Environment()
        assert root.push_scope().pop_scope() is root

    def test_inner_bindings_gone_after_pop(self):
        root = Environment()
        child = root.push_scope()
        child.define("tmp", 1)
        back = child.pop_scope()
        with pytest.raises(OxyNameError):
            back.get("tmp")

    def test_cannot_pop_root(self):
        with pytest.raises(OxyRuntimeError):
            Environment().pop_scope()
