"""Receipt / voice extraction parsing tests."""

from datetime import date

from monev.services.extraction import draft_from_reply


def test_receipt_reply_parsed():
    reply = (
        '{"merchant_name": "Indomaret", "amount": "Rp 45.500", "description": "belanja bulanan", '
        '"date": "2025-03-06", "category": "Belanja", "type": "expense"}'
    )

    draft = draft_from_reply(reply, source="ocr")

    assert draft.amount == 45500
    assert draft.merchant_name == "Indomaret"
    assert draft.occurred_on == date(2025, 3, 6)
    assert draft.category == "Belanja"
    assert draft.source == "ocr"
    assert draft.is_empty is False


def test_numeric_amount_rounded():
    draft = draft_from_reply('{"amount": 12000.6, "type": "income"}', source="voice")

    assert draft.amount == 12001
    assert draft.type == "income"


def test_unusable_fields_dropped():
    reply = '{"amount": "abc", "date": "kemarin", "category": "Crypto", "type": "transfer"}'

    draft = draft_from_reply(reply, source="ocr")

    assert draft.amount == 0
    assert draft.is_empty is True
    assert draft.occurred_on is None
    assert draft.category is None
    assert draft.type == "expense"


def test_garbage_reply_gives_empty_draft():
    draft = draft_from_reply("Maaf, saya tidak bisa membaca gambar ini.", source="ocr")

    assert draft.is_empty is True
    assert draft.merchant_name is None


def test_voice_transcription_used_as_description():
    draft = draft_from_reply(
        '{"amount": 25000, "category": "Transportasi"}',
        source="voice",
        transcription="tadi bayar parkir dua puluh lima ribu",
    )

    assert draft.description == "tadi bayar parkir dua puluh lima ribu"
    assert draft.transcription == "tadi bayar parkir dua puluh lima ribu"
    assert draft.amount == 25000
