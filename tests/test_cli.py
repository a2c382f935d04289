"""JSON scenario CLI."""

import json

import pytest

from conftest import seeded_catalog
from storefront_api.adapters.inbound.cli import run_cli
from storefront_api.bootstrap import build_usecases
from storefront_api.config import Settings


@pytest.fixture
def usecases():
    return build_usecases(Settings(db_path=None), catalog=seeded_catalog())


def test_guest_to_account_scenario(usecases, capsys):
    scenario = {
        "session_id": "s-1",
        "steps": [
            {"op": "add", "product_id": "tee", "delta": 2},
            {"op": "add", "product_id": "mug"},
            {"op": "sign_in", "account_id": "acct-1"},
            {"op": "show"},
            {"op": "checkout", "contact": "0971234567"},
        ],
    }

    code = run_cli(usecases, json.dumps(scenario))

    out = capsys.readouterr().out
    assert code == 0
    assert out.count("[ok]") == 5
    assert "persisted:acct-1" in out
    assert "'total': '25.50'" in out


def test_failed_step_sets_exit_code(usecases, capsys):
    scenario = {"session_id": "s-1", "steps": [{"op": "checkout", "contact": "0971234567"}]}

    assert run_cli(usecases, json.dumps(scenario)) == 1
    assert "[ng] checkout" in capsys.readouterr().out


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"steps": []}),
        json.dumps({"session_id": "s-1", "steps": [{"op": "teleport"}]}),
    ],
)
def test_invalid_input(usecases, capsys, raw):
    assert run_cli(usecases, raw) == 2
    assert "invalid_input" in capsys.readouterr().out
