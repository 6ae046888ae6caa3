# filename: huffman_cli.py

import argparse
import logging
import sys

from huffman_errors import HuffmanError
from huffman_service import HuffmanService
from huffman_tokenizers import TOKENIZERS, detokenizer_for

logger = logging.getLogger(__name__)


def read_input(path, tokens, encoding):
    with open(path, "rb") as f:
        data = f.read()
    if tokens == "bytes":
        return data
    return data.decode(encoding)


def compress(args):
    data = read_input(args.input, args.tokens, args.encoding)
    service = HuffmanService(tokenizer=args.tokens)
    compressed = service.compress(data)
    with open(args.output, "wb") as f:
        f.write(compressed)
    logger.info("compressed %s -> %s (%d -> %d bytes)", args.input, args.output, len(data), len(compressed))


def decompress(args):
    with open(args.input, "rb") as f:
        compressed = f.read()
    tokens = HuffmanService().decode(compressed) if compressed else []
    data = detokenizer_for(tokens)(tokens)
    if isinstance(data, str):
        data = data.encode(args.encoding)
    with open(args.output, "wb") as f:
        f.write(data)
    logger.info("decompressed %s -> %s (%d bytes)", args.input, args.output, len(data))


def stats(args):
    data = read_input(args.input, args.tokens, args.encoding)
    summary = HuffmanService(tokenizer=args.tokens).stats(data)
    for key, value in summary.items():
        if isinstance(value, float):
            value = f"{value:.4f}"
        print(f"{key}: {value}")


def build_parser():
    parser = argparse.ArgumentParser(prog="huffman-codec", description="Huffman token compressor")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every pipeline stage")
    sub = parser.add_subparsers(dest="mode", required=True)

    c = sub.add_parser("compress", help="compress a file")
    c.add_argument("input")
    c.add_argument("output")
    c.add_argument("--tokens", default="bytes", choices=sorted(TOKENIZERS))
    c.add_argument("--encoding", default="utf-8", help="text encoding for chars/words tokens")
    c.set_defaults(func=compress)

    d = sub.add_parser("decompress", help="decompress a file")
    d.add_argument("input")
    d.add_argument("output")
    d.add_argument("--encoding", default="utf-8", help="text encoding for str tokens")
    d.set_defaults(func=decompress)

    s = sub.add_parser("stats", help="print code statistics for a file")
    s.add_argument("input")
    s.add_argument("--tokens", default="bytes", choices=sorted(TOKENIZERS))
    s.add_argument("--encoding", default="utf-8")
    s.set_defaults(func=stats)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (HuffmanError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
