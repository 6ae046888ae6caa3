# filename: huffman_service.py

import logging

from huffman_container import Container, pack_container, token_kind, unpack_container
from huffman_core import HuffmanLogic
from huffman_errors import CorruptContainer, InvalidAlphabet
from huffman_tokenizers import get_tokenizer

logger = logging.getLogger(__name__)


class HuffmanService:
    """Runs the Huffman pipeline and wraps it in the container format.

    ``hook``, when given, is called as ``hook(stage, info)`` once per stage
    boundary with a dict of summary numbers for that stage.
    """

    def __init__(self, tokenizer="bytes", hook=None):
        self.logic = HuffmanLogic()
        self.tokenizer = get_tokenizer(tokenizer)
        self.hook = hook

    def _report(self, stage, **info):
        logger.debug("%s %s", stage, info)
        if self.hook is not None:
            self.hook(stage, info)

    def encode(self, tokens, frequency_table=None):
        tokens = list(tokens)
        external = frequency_table is not None
        if not external:
            frequency_table = self.logic.count_frequencies(tokens)
        self._report("frequencies", distinct=len(frequency_table), external=external)

        tree = self.logic.build_tree(frequency_table)
        self._report("tree", leaves=tree.leaf_count, nodes=len(tree))

        codes = self.logic.generate_codes(tree)
        self._report("codes", codes=len(codes), longest=max(len(c) for c in codes.values()))

        bits = self.logic.encode_bits(codes, tokens)
        self._report("bits", tokens=len(tokens), bits=len(bits))

        table = None if external else frequency_table
        buffer = pack_container(Container(table, len(tokens), bits))
        self._report("container", bytes=len(buffer))
        return buffer

    def decode(self, buffer, frequency_table=None):
        container = unpack_container(buffer)
        self._report(
            "container", bytes=len(buffer),
            tokens=container.token_count, bits=len(container.bits),
        )

        table = container.frequency_table
        if table is None:
            if frequency_table is None:
                raise InvalidAlphabet(
                    "container was encoded with an external frequency table, none was supplied"
                )
            table = frequency_table
        elif frequency_table is not None and dict(frequency_table) != table:
            raise CorruptContainer("embedded frequency table differs from the supplied one")

        tree = self.logic.build_tree(table)
        self._report("tree", leaves=tree.leaf_count, nodes=len(tree))

        tokens = self.logic.decode_bits(tree, container.bits, container.token_count)
        self._report("tokens", tokens=len(tokens))
        return tokens

    def compress(self, data):
        if not data:
            return b""
        return self.encode(self.tokenizer.tokenize(data))

    def decompress(self, data):
        if not data:
            return self.tokenizer.empty
        tokens = self.decode(data)
        kind = token_kind(tokens)
        if kind not in self.tokenizer.kinds:
            raise CorruptContainer(
                f"container holds token kind {kind}, the {self.tokenizer.name!r} "
                f"tokenizer cannot detokenize it"
            )
        return self.tokenizer.detokenize(tokens)

    def stats(self, data):
        """Summarize how well ``data`` compresses with the configured tokenizer."""
        tokens = self.tokenizer.tokenize(data)
        frequency_table = self.logic.count_frequencies(tokens)
        if not frequency_table:
            return {
                "tokens": 0,
                "distinct": 0,
                "depth": 0,
                "average_code_length": 0.0,
                "encoded_bits": 0,
                "container_bytes": 0,
            }
        tree = self.logic.build_tree(frequency_table)
        codes = self.logic.generate_codes(tree)
        average = self.logic.average_code_length(codes, frequency_table)
        return {
            "tokens": len(tokens),
            "distinct": len(frequency_table),
            "depth": tree.depth(),
            "average_code_length": average,
            "encoded_bits": sum(len(codes[t]) * n for t, n in frequency_table.items()),
            "container_bytes": len(self.encode(tokens)),
        }


_default_service = HuffmanService()


def encode(tokens, frequency_table=None):
    return _default_service.encode(tokens, frequency_table)


def decode(buffer, frequency_table=None):
    return _default_service.decode(buffer, frequency_table)
