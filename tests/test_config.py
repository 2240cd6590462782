"""Tests for settings, the labels file and label suggestions."""

import json

import pytest

from gmail_triage import constants
from gmail_triage.config import load_settings, load_taxonomy, save_taxonomy, suggest_label_mapping
from gmail_triage.exceptions import ConfigError
from gmail_triage.models import LabelKey


def test_defaults(tmp_path):
    settings = load_settings(env={}, labels_path=tmp_path / "labels.json")

    assert settings.my_email == ""
    assert settings.openai_api_key is None
    assert settings.model == "gpt-4o"
    assert settings.max_tokens == 10000
    assert settings.poll_interval == 300.0
    assert settings.max_results == 200
    assert settings.taxonomy.id_for(LabelKey.TO_RESPOND) == "Label_19"
    assert settings.taxonomy.id_for(LabelKey.MEETING_UPDATE) == "INBOX"


def test_env_overrides(tmp_path):
    env = {
        "GMAIL_TRIAGE_MY_EMAIL": " me@example.com ",
        "OPENAI_API_KEY": "sk-test",
        "GMAIL_TRIAGE_MODEL": "gpt-4o-mini",
        "GMAIL_TRIAGE_MAX_TOKENS": "512",
        "GMAIL_TRIAGE_POLL_INTERVAL": "60",
        "GMAIL_TRIAGE_MAX_RESULTS": "50",
    }
    settings = load_settings(env=env, labels_path=tmp_path / "labels.json")

    assert settings.my_email == "me@example.com"
    assert settings.openai_api_key == "sk-test"
    assert settings.model == "gpt-4o-mini"
    assert settings.max_tokens == 512
    assert settings.poll_interval == 60.0
    assert settings.max_results == 50


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_numbers_rejected(tmp_path, value):
    with pytest.raises(ConfigError, match="GMAIL_TRIAGE_MAX_TOKENS"):
        load_settings(env={"GMAIL_TRIAGE_MAX_TOKENS": value}, labels_path=tmp_path / "labels.json")


def test_labels_file_overrides_some_ids(tmp_path):
    path = tmp_path / "labels.json"
    path.write_text(json.dumps({"fyi": "Label_A", "TICKETS": "Label_B"}))

    taxonomy = load_taxonomy(path)

    assert taxonomy.id_for(LabelKey.FYI) == "Label_A"
    assert taxonomy.id_for(LabelKey.TICKETS) == "Label_B"
    assert taxonomy.id_for(LabelKey.RECEIPTS) == "Label_2"
    assert taxonomy.name_for_id("Label_A") == "FYI"


def test_labels_file_default_location(tmp_path, monkeypatch):
    monkeypatch.setattr(constants, "LABELS_PATH", tmp_path / "labels.json")
    (tmp_path / "labels.json").write_text(json.dumps({"MARKETING": "Label_M"}))

    assert load_taxonomy().id_for(LabelKey.MARKETING) == "Label_M"


@pytest.mark.parametrize(
    "content, message",
    [
        ("{not json", "not valid JSON"),
        ("[1, 2]", "JSON object"),
        ('{"SPAM": "Label_1"}', "Unknown label key"),
        ('{"FYI": ""}', "non-empty string"),
    ],
)
def test_bad_labels_file(tmp_path, content, message):
    path = tmp_path / "labels.json"
    path.write_text(content)

    with pytest.raises(ConfigError, match=message):
        load_taxonomy(path)


def test_suggest_label_mapping():
    labels = [
        {"id": "INBOX", "name": "INBOX", "type": "system"},
        {"id": "Label_1", "name": "Needs Action", "type": "user"},
        {"id": "Label_2", "name": "Invoices", "type": "user"},
        {"id": "Label_3", "name": "Travel", "type": "user"},
        {"id": "CATEGORY_PROMOTIONS", "name": "CATEGORY_PROMOTIONS", "type": "system"},
    ]

    mapping = suggest_label_mapping(labels)

    assert list(mapping) == [k.value for k in LabelKey]
    assert mapping["TO_RESPOND"] == "Label_1"
    assert mapping["RECEIPTS"] == "Label_2"
    assert mapping["TICKETS"] == "Label_3"
    assert mapping["MARKETING"] == "INBOX"


def test_saved_mapping_loads_back(tmp_path):
    path = save_taxonomy({"FYI": "Label_F"}, tmp_path / "nested" / "labels.json")

    assert path.exists()
    assert load_taxonomy(path).id_for(LabelKey.FYI) == "Label_F"
