from __future__ import annotations

import io
import json
import logging

import pytest

from nfc_nft import logging as nlog
from nfc_nft.errors import ContractError

from .conftest import BASE_URI, MAX_TOKENS, NAME, SYMBOL


@pytest.fixture
def stream():
    buf = io.StringIO()
    nlog.configure(json=True, level="DEBUG", stream=buf)
    yield buf
    logger = logging.getLogger(nlog.ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    nlog.clear_context()


def _records(buf: io.StringIO):
    return [json.loads(ln) for ln in buf.getvalue().splitlines() if ln.strip()]


def test_trace_scope_restores_context():
    nlog.clear_context()
    with nlog.trace_scope(call="mint") as tid:
        assert nlog.context() == {"trace_id": tid, "call": "mint"}
        with nlog.trace_scope() as inner:
            assert inner == tid
    assert nlog.context() == {}


def test_bind_coerces_values():
    nlog.clear_context()
    nlog.bind(pk=b"\x04\xab", n=3)
    assert nlog.context() == {"pk": "04ab", "n": 3}
    nlog.unbind("pk")
    assert nlog.context() == {"n": 3}
    nlog.clear_context()


def test_get_logger_namespacing():
    assert nlog.get_logger().name == "nfc_nft"
    assert nlog.get_logger("db.sqlite").name == "nfc_nft.db.sqlite"
    assert nlog.get_logger("nfc_nft.events").name == "nfc_nft.events"


def test_json_lines_carry_invocation_context(stream, nft, admin, chip_a, sign):
    nft.mint(*sign(chip_a, admin, 1).as_args())
    recs = [r for r in _records(stream) if r.get("call") == "mint"]
    assert recs
    assert len({r["trace_id"] for r in recs}) == 1
    event = [r for r in recs if r["logger"] == "nfc_nft.events"]
    assert event and event[0]["msg"] == "mint"
    assert event[0]["event"]["topics"] == [0]


def test_failed_invocation_logs_warning_with_code(stream, nft, admin):
    with pytest.raises(ContractError):
        nft.initialize(admin, NAME, SYMBOL, BASE_URI, MAX_TOKENS)
    warn = [r for r in _records(stream) if r["level"] == "WARNING"]
    assert warn[-1]["msg"] == "invoke failed"
    assert warn[-1]["code"] == "CONTRACT/AlreadyInitialized"
    assert warn[-1]["call"] == "initialize"


def test_text_formatter_single_line():
    rec = logging.LogRecord("nfc_nft.x", logging.INFO, __file__, 1, "hello", None, None)
    rec.token_id = 7
    line = nlog.TextFormatter().format(rec)
    assert "\n" not in line
    assert line.endswith("| hello")
    assert "token_id=7" in line
