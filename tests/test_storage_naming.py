import re

from media_processor.app.services.storage_naming import build_storage_key, build_storage_name, sanitize_file_name

SAFE_RE = re.compile(r"^[A-Za-z0-9_.-]*$")


def test_sanitize_strips_emoji_and_punctuation():
    sanitized = sanitize_file_name("bom dia 😀!!.png")
    assert SAFE_RE.match(sanitized)
    assert "__" not in sanitized
    assert sanitized.endswith(".png")


def test_sanitize_folds_accents():
    assert sanitize_file_name("promoção de verão.pdf") == "promocao_de_verao.pdf"


def test_sanitize_collapses_underscores_and_whitespace():
    assert sanitize_file_name("  a   b__c\t d ") == "a_b_c_d"


def test_storage_name_with_file_name():
    name = build_storage_name("Relatório Final.PDF", "pdf", clock=lambda: 1700000000000, random_suffix=lambda: "deadbeef")
    assert name == "1700000000000_deadbeef_Relatorio_Final.pdf"


def test_storage_name_without_file_name():
    name = build_storage_name(None, "jpg", clock=lambda: 1700000000000, random_suffix=lambda: "0a1b2c3d")
    assert name == "1700000000000_0a1b2c3d.jpg"


def test_storage_name_when_file_name_sanitizes_to_nothing():
    name = build_storage_name("😀😀.png", "png", clock=lambda: 1, random_suffix=lambda: "cafebabe")
    assert name == "1_cafebabe.png"


def test_storage_name_uses_resolved_extension():
    name = build_storage_name("voice.ogg", "mp3", clock=lambda: 1, random_suffix=lambda: "cafebabe")
    assert name == "1_cafebabe_voice.mp3"


def test_default_names_are_unique_and_well_formed():
    first = build_storage_name("photo.jpg", "jpg")
    second = build_storage_name("photo.jpg", "jpg")
    assert first != second
    assert re.match(r"^\d{13}_[0-9a-f]{8}_photo\.jpg$", first)


def test_storage_key_prefix():
    assert build_storage_key("1_cafebabe.png") == "messages/1_cafebabe.png"
    assert build_storage_key("1_cafebabe.png", prefix="") == "1_cafebabe.png"


def test_storage_name_strips_unsafe_extension():
    name = build_storage_name("relatorio.pdf (1)", "x/../../escape", clock=lambda: 1, random_suffix=lambda: "cafebabe")
    assert name == "1_cafebabe_relatorio.xescape"
    assert build_storage_name(None, "", clock=lambda: 1, random_suffix=lambda: "cafebabe") == "1_cafebabe.unknown"
