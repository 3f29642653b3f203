import dataclasses

import pytest

from azmem.llm import (
    BackendError,
    DecodeError,
    EmbeddingsLlm,
    GenerationRequest,
    GenerationResponse,
    HttpError,
    Llm,
    LlmError,
)


class EchoLlm(Llm):
    def __init__(self):
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        return GenerationResponse(text=request.user.upper())


def _request(**overrides):
    fields = dict(system="sys", user="usr", model="m", temperature=0.2, json_mode=True)
    fields.update(overrides)
    return GenerationRequest(**fields)


@pytest.mark.parametrize(
    "cls, prefix",
    [(HttpError, "http"), (DecodeError, "decode"), (BackendError, "backend")],
)
def test_error_messages_carry_prefix(cls, prefix):
    err = cls("boom")
    assert str(err) == f"{prefix}: boom"
    assert err.detail == "boom"
    assert isinstance(err, LlmError)


def test_base_error_message():
    err = LlmError("vide")
    assert str(err) == "llm: vide"
    assert err.detail == "vide"


def test_request_is_frozen():
    req = _request()
    with pytest.raises(dataclasses.FrozenInstanceError):
        req.user = "other"
    assert req.user == "usr"


def test_request_replace_keeps_other_fields():
    req = _request()
    changed = dataclasses.replace(req, user="autre")
    assert changed.user == "autre"
    assert changed.system == req.system
    assert changed.json_mode is True
    assert changed != req


def test_llm_is_abstract():
    with pytest.raises(TypeError):
        Llm()


def test_embeddings_llm_is_abstract():
    with pytest.raises(TypeError):
        EmbeddingsLlm()


def test_subclass_generate_receives_request():
    llm = EchoLlm()
    req = _request(user="bonjour")
    resp = llm.generate(req)
    assert resp == GenerationResponse(text="BONJOUR")
    assert llm.requests == [req]