# filename: huffman_core.py

import heapq
import logging
from collections import Counter

from bitarray import bitarray, frozenbitarray

from huffman_errors import CorruptContainer, InvalidAlphabet, TokenNotInAlphabet

logger = logging.getLogger(__name__)

NO_CHILD = -1


class PrefixTree:
    """Huffman tree stored as an arena of nodes addressed by index.

    Node ``i`` is described by ``freqs[i]``, ``tokens[i]``, ``lefts[i]`` and
    ``rights[i]``. Leaves have ``NO_CHILD`` on both sides and internal nodes
    carry ``None`` as their token. Children always have a smaller index than
    their parent, so the root is the last node appended.
    """

    def __init__(self):
        self.freqs = []
        self.tokens = []
        self.lefts = []
        self.rights = []
        self.root = NO_CHILD

    def __len__(self):
        return len(self.freqs)

    def add_leaf(self, token, freq):
        self.freqs.append(freq)
        self.tokens.append(token)
        self.lefts.append(NO_CHILD)
        self.rights.append(NO_CHILD)
        return len(self.freqs) - 1

    def add_node(self, left, right):
        self.freqs.append(self.freqs[left] + self.freqs[right])
        self.tokens.append(None)
        self.lefts.append(left)
        self.rights.append(right)
        return len(self.freqs) - 1

    def is_leaf(self, index):
        return self.lefts[index] == NO_CHILD

    def leaves(self):
        """Yield ``(token, freq)`` for every leaf in arena order."""
        for index in range(len(self.freqs)):
            if self.is_leaf(index):
                yield self.tokens[index], self.freqs[index]

    @property
    def leaf_count(self):
        return sum(1 for _ in self.leaves())

    def depth(self):
        """Length of the longest root-to-leaf path."""
        if self.root == NO_CHILD:
            return 0
        deepest = 0
        stack = [(self.root, 0)]
        while stack:
            index, level = stack.pop()
            if self.is_leaf(index):
                deepest = max(deepest, level)
            else:
                stack.append((self.lefts[index], level + 1))
                stack.append((self.rights[index], level + 1))
        return deepest


class HuffmanLogic:
    def count_frequencies(self, tokens):
        # Frequency analysis of the input tokens
        return Counter(tokens)

    def build_tree(self, frequency_table):
        """Merge a frequency table into a deterministic prefix tree.

        Leaves are added in ascending token order, so a leaf's arena index is
        its rank in that order, and every merged node takes the next index.
        Heap entries are ``(freq, index)``: equal frequencies resolve by token
        order among leaves, leaves before merged nodes, and merged nodes by
        creation order. The first candidate popped becomes the left child.
        """
        if not frequency_table:
            raise InvalidAlphabet("cannot build a tree from an empty frequency table")
        try:
            ordered = sorted(frequency_table)
        except TypeError as exc:
            raise InvalidAlphabet(f"tokens have no total order: {exc}") from exc

        tree = PrefixTree()
        priority_queue = []
        for token in ordered:
            freq = frequency_table[token]
            if not isinstance(freq, int) or isinstance(freq, bool) or freq < 1:
                raise InvalidAlphabet(f"token {token!r} has invalid count {freq!r}")
            index = tree.add_leaf(token, freq)
            priority_queue.append((freq, index))
        heapq.heapify(priority_queue)

        # Iteratively merge the two lightest candidates until one remains
        while len(priority_queue) > 1:
            _, left = heapq.heappop(priority_queue)
            _, right = heapq.heappop(priority_queue)
            merged = tree.add_node(left, right)
            heapq.heappush(priority_queue, (tree.freqs[merged], merged))

        tree.root = priority_queue[0][1]
        logger.debug("built prefix tree: %d leaves, %d nodes", len(ordered), len(tree))
        return tree

    def generate_codes(self, tree):
        root = tree.root
        if tree.is_leaf(root):
            # Single-token alphabet: the natural path is empty, use a fixed one-bit code
            return {tree.tokens[root]: frozenbitarray("0")}

        codes = {}
        stack = [(root, bitarray())]
        while stack:
            index, path = stack.pop()
            if tree.is_leaf(index):
                codes[tree.tokens[index]] = frozenbitarray(path)
                continue
            stack.append((tree.rights[index], path + bitarray("1")))
            stack.append((tree.lefts[index], path + bitarray("0")))
        return codes

    def encode_bits(self, codes, tokens):
        bits = bitarray(endian="big")
        for token in tokens:
            try:
                code = codes[token]
            except (KeyError, TypeError):
                raise TokenNotInAlphabet(token) from None
            bits.extend(code)
        return bits

    def decode_bits(self, tree, bits, token_count):
        """Walk ``tree`` over ``bits`` and return exactly ``token_count`` tokens.

        Every bit must be consumed: running out early or having bits left over
        means the stream does not match the tree.
        """
        root = tree.root
        total = len(bits)

        if tree.is_leaf(root):
            if total != token_count:
                raise CorruptContainer(
                    f"single-token stream holds {total} bits for {token_count} tokens"
                )
            if bits.any():
                raise CorruptContainer("single-token stream contains a 1 bit")
            return [tree.tokens[root]] * token_count

        lefts, rights, node_tokens = tree.lefts, tree.rights, tree.tokens
        tokens = []
        position = 0
        while len(tokens) < token_count:
            index = root
            while lefts[index] != NO_CHILD:
                if position == total:
                    raise CorruptContainer(
                        f"bit stream ended after {len(tokens)} of {token_count} tokens"
                    )
                index = rights[index] if bits[position] else lefts[index]
                position += 1
            tokens.append(node_tokens[index])

        if position != total:
            raise CorruptContainer(
                f"{total - position} bits left over after {token_count} tokens"
            )
        return tokens

    def average_code_length(self, codes, frequency_table):
        """Mean code length in bits per token, weighted by frequency."""
        total = sum(frequency_table.values())
        if not total:
            return 0.0
        weighted = sum(len(codes[token]) * freq for token, freq in frequency_table.items())
        return weighted / total
