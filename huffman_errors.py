# filename: huffman_errors.py


class HuffmanError(Exception):
    """Base class for every error raised by the codec."""


class InvalidAlphabet(HuffmanError, ValueError):
    """The frequency table cannot produce a prefix tree."""


class TokenNotInAlphabet(HuffmanError, LookupError):
    def __init__(self, token):
        super().__init__(f"token {token!r} is not in the alphabet")
        self.token = token


class CorruptContainer(HuffmanError, ValueError):
    """The container bytes are structurally invalid."""


class Truncated(CorruptContainer):
    """The container is shorter than its declared sections require."""
