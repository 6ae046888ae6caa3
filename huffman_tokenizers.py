# filename: huffman_tokenizers.py

import re
from collections import namedtuple

from huffman_container import (
    KIND_BYTE,
    KIND_BYTES,
    KIND_INT,
    KIND_NONE,
    KIND_STR,
    token_kind,
)

# kinds: container token kinds the detokenizer accepts
Tokenizer = namedtuple("Tokenizer", ["name", "tokenize", "detokenize", "empty", "kinds"])

# Alternating runs of word and non-word characters cover every character once
WORD_RUNS = re.compile(r"\w+|\W+")


def split_words(text):
    return WORD_RUNS.findall(text)


def join_text(tokens):
    return "".join(tokens)


TOKENIZERS = {
    "bytes": Tokenizer("bytes", list, bytes, b"", (KIND_NONE, KIND_BYTE)),
    "chars": Tokenizer("chars", list, join_text, "", (KIND_NONE, KIND_STR)),
    "words": Tokenizer("words", split_words, join_text, "", (KIND_NONE, KIND_STR)),
}

# Detokenizers to use when only the container's token kind is known
KIND_DETOKENIZERS = {
    KIND_NONE: bytes,
    KIND_BYTE: bytes,
    KIND_INT: bytes,
    KIND_STR: join_text,
    KIND_BYTES: b"".join,
}


def detokenizer_for(tokens):
    return KIND_DETOKENIZERS[token_kind(tokens)]


def get_tokenizer(name):
    try:
        return TOKENIZERS[name]
    except KeyError:
        known = ", ".join(sorted(TOKENIZERS))
        raise KeyError(f"unknown tokenizer {name!r}, expected one of: {known}") from None
