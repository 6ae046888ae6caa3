import os
import sys
import random
import time
from collections import Counter

import pytest

# Add repository root to path
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

IMPORT_ERROR = None
hs = None
hc = None
try:
    import huffman_service as hs
    import huffman_core as hc
    from huffman_errors import (
        CorruptContainer,
        InvalidAlphabet,
        TokenNotInAlphabet,
        Truncated,
    )
except Exception as e:
    IMPORT_ERROR = e


def _get_service(tokenizer="bytes", hook=None):
    if IMPORT_ERROR:
        pytest.skip(f"cannot import huffman modules: {IMPORT_ERROR}")
    return hs.HuffmanService(tokenizer=tokenizer, hook=hook)


def test_modules_and_classes_present():
    assert IMPORT_ERROR is None
    assert hasattr(hs, 'HuffmanService')
    assert hasattr(hc, 'HuffmanLogic')


def test_roundtrip_random_10kb():
    svc = _get_service()

    data = bytes(random.getrandbits(8) for _ in range(10 * 1024))
    compressed = svc.compress(data)
    out = svc.decompress(compressed)
    assert out == data


def test_roundtrip_all_bytes_once():
    svc = _get_service()

    data = bytes(range(256))
    compressed = svc.compress(data)
    out = svc.decompress(compressed)
    assert out == data


def test_empty_input():
    svc = _get_service()
    assert svc.compress(b"") == b""
    assert svc.decompress(b"") == b""


def test_empty_text_input_returns_text():
    svc = _get_service("chars")
    assert svc.decompress(svc.compress("")) == ""


def test_single_byte_repeated_small():
    svc = _get_service()

    data = b'A' * (1024 * 10)
    compressed = svc.compress(data)
    out = svc.decompress(compressed)
    assert out == data
    # one bit per token plus the fixed-size header and table
    assert len(compressed) < 1400


def test_single_token_alphabet_chars():
    svc = _get_service("chars")
    assert svc.decompress(svc.compress("aaaa")) == "aaaa"


def test_small_inputs():
    svc = _get_service()

    for n in (1, 2, 3):
        data = bytes(random.getrandbits(8) for _ in range(n))
        compressed = svc.compress(data)
        out = svc.decompress(compressed)
        assert out == data


@pytest.mark.parametrize("tokenizer, data", [
    ("chars", "the quick brown fox jumps over the lazy dog"),
    ("chars", "ünïcødé ✓ text — with symbols"),
    ("words", "to be, or not to be: that is the question.\n"),
    ("bytes", b"This is a test" * 100),
])
def test_roundtrip_tokenizers(tokenizer, data):
    svc = _get_service(tokenizer)
    assert svc.decompress(svc.compress(data)) == data


@pytest.mark.parametrize("tokens", [
    [-5, 300, 2 ** 40, 300, -5, -5],
    [b"ab", b"", b"ab", b"\x00\xff"],
    ["alpha", "beta", "alpha", "gamma", "alpha"],
])
def test_encode_decode_generic_tokens(tokens):
    assert hs.decode(hs.encode(tokens)) == tokens


def test_encode_is_deterministic():
    tokens = list("mississippi river banks")
    assert hs.encode(tokens) == hs.encode(list(tokens))


def test_encode_empty_without_table_is_invalid_alphabet():
    with pytest.raises(InvalidAlphabet):
        hs.encode([])


def test_external_frequency_table_roundtrip():
    table = Counter("abracadabra")
    buffer = hs.encode("cabbar", table)
    assert hs.decode(buffer, table) == list("cabbar")


def test_external_table_is_not_embedded():
    table = Counter("abracadabra")
    shared = hs.encode("abracadabra", table)
    embedded = hs.encode("abracadabra")
    assert len(shared) < len(embedded)


def test_external_table_required_for_decode():
    table = {"a": 2, "b": 1}
    buffer = hs.encode("ab", table)
    with pytest.raises(InvalidAlphabet):
        hs.decode(buffer)


def test_external_table_with_empty_tokens():
    table = {"a": 2, "b": 1}
    assert hs.decode(hs.encode([], table), table) == []


def test_token_missing_from_external_table():
    with pytest.raises(TokenNotInAlphabet) as excinfo:
        hs.encode(["a", "q"], {"a": 1, "b": 1})
    assert excinfo.value.token == "q"


def test_supplied_table_must_match_embedded_table():
    buffer = hs.encode(list("aab"))
    assert hs.decode(buffer, {"a": 2, "b": 1}) == list("aab")
    with pytest.raises(CorruptContainer):
        hs.decode(buffer, {"a": 1, "b": 1})


def test_truncated_stream_behavior():
    svc = _get_service()

    data = b'This is a test' * 100
    compressed = svc.compress(data)
    # truncate last few bytes
    for cut in (1, 3):
        with pytest.raises(Truncated):
            svc.decompress(compressed[:-cut])


def test_corrupted_header_behavior():
    svc = _get_service()

    data = b'Hello World' * 50
    compressed = bytearray(svc.compress(data))
    # flip some bits in the beginning to simulate header corruption
    compressed[0] ^= 0xFF
    with pytest.raises(CorruptContainer):
        svc.decompress(bytes(compressed))


def test_hook_sees_each_stage_once():
    events = []
    svc = _get_service(hook=lambda stage, info: events.append((stage, info)))

    buffer = svc.encode(list("aaabbc"))
    assert [stage for stage, _ in events] == ["frequencies", "tree", "codes", "bits", "container"]
    assert dict(events)["bits"] == {"tokens": 6, "bits": 9}

    events.clear()
    svc.decode(buffer)
    assert [stage for stage, _ in events] == ["container", "tree", "tokens"]
    assert dict(events)["tree"]["leaves"] == 3


def test_stats_reports_code_lengths():
    summary = _get_service("chars").stats("aaabbc")
    assert summary["tokens"] == 6
    assert summary["distinct"] == 3
    assert summary["depth"] == 2
    assert summary["encoded_bits"] == 9
    assert summary["average_code_length"] == pytest.approx(1.5)


@pytest.mark.timeout(120)
def test_performance_1mb_baseline():
    svc = _get_service()
    data = bytes(random.getrandbits(8) for _ in range(1024 * 1024))
    t0 = time.time()
    compressed = svc.compress(data)
    dur = time.time() - t0
    assert len(compressed) > 0
    print(f"Compression time for 1MB: {dur:.4f}s")


def test_service_initializes_logic_attribute():
    svc = _get_service()
    assert isinstance(svc.logic, hc.HuffmanLogic)


@pytest.mark.parametrize("packed_with, unpacked_with, data", [
    ("chars", "bytes", "hello"),
    ("words", "bytes", "hello world"),
    ("bytes", "chars", b"hello"),
    ("bytes", "words", b"hello world"),
])
def test_decompress_rejects_other_token_kind(packed_with, unpacked_with, data):
    compressed = _get_service(packed_with).compress(data)
    with pytest.raises(CorruptContainer, match="token kind"):
        _get_service(unpacked_with).decompress(compressed)


def test_decompress_rejects_wide_int_tokens():
    compressed = hs.encode([1, 300, 1])
    with pytest.raises(CorruptContainer):
        _get_service("bytes").decompress(compressed)


def test_chars_and_words_share_str_containers():
    compressed = _get_service("words").compress("to be or not")
    assert _get_service("chars").decompress(compressed) == "to be or not"


def test_stats_of_empty_input_is_zero():
    summary = _get_service().stats(b"")
    assert summary["tokens"] == 0
    assert summary["distinct"] == 0
    assert summary["encoded_bits"] == 0


def test_unknown_tokenizer():
    with pytest.raises(KeyError):
        _get_service("sentences")
