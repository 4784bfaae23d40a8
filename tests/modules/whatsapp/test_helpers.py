# tests/modules/whatsapp/test_helpers.py
from agencyos.modules.whatsapp.services import build_instance_name, extract_qr, normalize_state
from agencyos.modules.whatsapp.webhook import extract_content, normalize_phone


def test_normalize_phone():
    assert normalize_phone("+7 (701) 123-45-67") == "77011234567"
    assert normalize_phone("87011234567") == "77011234567"
    assert normalize_phone("7011234567") == "77011234567"
    assert normalize_phone("4915112345678") == "4915112345678"


def test_normalize_state():
    assert normalize_state("close") == "disconnected"
    assert normalize_state(None) == "disconnected"
    assert normalize_state("open") == "open"
    assert normalize_state("refused") == "connecting"


def test_extract_qr_variants():
    assert extract_qr({"qrcode": {"base64": "A"}}) == "A"
    assert extract_qr({"qrcode": "B"}) == "B"
    assert extract_qr({"base64": "C"}) == "C"
    assert extract_qr({"count": 1}) is None


def test_build_instance_name():
    assert build_instance_name("65f1a2b3c4d5e6f7a8b9c0d1", "Sales-Team 1") == "org_65f1a2b3c4d5e6f7a8b9c0d1_sales_team_1"


def test_instance_names_differ_for_organizations_created_in_the_same_second():
    # ObjectIds minted in the same second share their first 8 hex chars
    first, second = "6ad49b80aaaaaaaaaaaa0001", "6ad49b80aaaaaaaaaaaa0002"

    assert build_instance_name(first, "main") != build_instance_name(second, "main")


def test_extract_content_of_media_messages():
    image = extract_content({"imageMessage": {"url": "https://mmg/1", "caption": ""}})
    assert image == {"content": "[Image]", "media_url": "https://mmg/1", "media_type": "image", "media_filename": None}

    document = extract_content({"documentMessage": {"url": "https://mmg/2", "fileName": "kp.pdf"}})
    assert document["media_filename"] == "kp.pdf"
    assert document["content"] == "[Document]"

    assert extract_content({"extendedTextMessage": {"text": "hi"}})["content"] == "hi"
    assert extract_content(None)["content"] == ""
