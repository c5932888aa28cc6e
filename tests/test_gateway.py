"""Tests for the persistence gateway and the effect queue."""

import logging

from pomotrack.remote import RemoteError


class TestPersistenceGateway:
    def test_returns_remote_result(self, gateway):
        seen = []
        result = gateway.perform(lambda: 42, lambda: -1, seen.append, "answer")
        assert result == 42
        assert seen == [42]

    def test_falls_back_when_remote_fails(self, gateway, caplog):
        seen = []

        def remote():
            raise RemoteError("down")

        with caplog.at_level(logging.WARNING):
            result = gateway.perform(remote, lambda: "local", seen.append, "lookup")

        assert result == "local"
        assert seen == []
        assert "Remote lookup failed" in caplog.text

    def test_fallback_mutates_local_storage(self, gateway, local):
        def remote():
            raise ConnectionError("no route")

        def fallback():
            local.set("tasks", [{"id": "a"}])
            return "stored"

        assert gateway.perform(remote, fallback) == "stored"
        assert local.get("tasks") == [{"id": "a"}]


class TestEffectQueue:
    def test_runs_in_submission_order(self, effects):
        order = []
        effects.submit(order.append, 1)
        effects.submit(order.append, 2)
        effects.submit(order.append, 3)

        assert len(effects) == 3
        assert effects.drain() == 3
        assert order == [1, 2, 3]
        assert len(effects) == 0

    def test_failing_effect_is_dropped(self, effects, caplog):
        order = []

        def boom():
            raise RuntimeError("kaput")

        effects.submit(order.append, "before")
        effects.submit(boom)
        effects.submit(order.append, "after")

        with caplog.at_level(logging.ERROR):
            effects.drain()

        assert order == ["before", "after"]
        assert "kaput" in caplog.text
        assert effects.drain() == 0

    def test_effects_submitted_while_draining_also_run(self, effects):
        order = []

        def chain():
            order.append("first")
            effects.submit(order.append, "second")

        effects.submit(chain)
        assert effects.drain() == 2
        assert order == ["first", "second"]
