"""Tests for the origin agent registry and reply coercion."""

from __future__ import annotations

import pytest

from redwing.agents.base import coerce_reply
from redwing.agents.registry import OriginAgentRegistry
from redwing.models.escalation import OriginAgent
from redwing.models.messages import AgentReply
from tests.fakes import FakeOriginAgent


class TestRegistry:
    def test_resolves_registered_handler(self):
        agent = FakeOriginAgent()
        registry = OriginAgentRegistry({"PA": agent})
        assert registry.resolve(OriginAgent.PA) is agent
        assert registry.resolve("PA") is agent
        assert "PA" in registry

    def test_unregistered_tag_resolves_to_none(self):
        registry = OriginAgentRegistry({"PA": FakeOriginAgent()})
        assert registry.resolve("TA") is None
        assert registry.missing() == [OriginAgent.TA, OriginAgent.GA]

    def test_unknown_tag_resolves_to_none(self):
        registry = OriginAgentRegistry()
        assert registry.resolve("ZZ") is None
        assert "ZZ" not in registry
        assert None not in registry

    def test_register_rejects_unknown_tag(self):
        with pytest.raises(ValueError):
            OriginAgentRegistry({"ZZ": FakeOriginAgent()})

    def test_register_rejects_non_agent(self):
        with pytest.raises(TypeError):
            OriginAgentRegistry().register("PA", object())


class TestCoerceReply:
    def test_none(self):
        assert coerce_reply(None) is None

    def test_string(self):
        assert coerce_reply("hello") == AgentReply(reply_text="hello")

    def test_dict_keeps_extras(self):
        reply = coerce_reply({"reply_text": "hi", "intent": "done"})
        assert reply.reply_text == "hi"
        assert reply.model_extra == {"intent": "done"}

    def test_object_with_reply_text(self):
        class Result:
            reply_text = "obj"

        assert coerce_reply(Result()).reply_text == "obj"

    def test_unsupported(self):
        with pytest.raises(TypeError):
            coerce_reply(42)

