"""Huffman trees, code tables, bit packing and the archive header format."""

from __future__ import annotations

import enum
import struct
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import BinaryIO, Optional, Union

_HEADER = struct.Struct("<iqi")
_ENTRY = struct.Struct("<BQB")


class TreeVariant(enum.Enum):
    """How the leaf list is prepared and how merged pairs are attached."""

    SERIAL = "serial"
    FORK = "fork"
    THREADED = "threaded"

    @property
    def sorts_leaves(self) -> bool:
        """Whether leaves are ordered by frequency before merging."""
        return self is not TreeVariant.SERIAL

    @property
    def first_goes_right(self) -> bool:
        """Whether the lighter node of a merged pair becomes the right child."""
        return self is TreeVariant.FORK

    @property
    def internal_symbol(self) -> int:
        """Placeholder symbol stored on internal nodes."""
        return {
            TreeVariant.SERIAL: ord(";"),
            TreeVariant.FORK: ord(":"),
            TreeVariant.THREADED: 0,
        }[self]


@dataclass
class HuffmanNode:
    """A node of a Huffman tree; leaves carry the symbol they stand for."""

    symbol: int = 0
    count: int = 0
    left: Optional["HuffmanNode"] = None
    right: Optional["HuffmanNode"] = None

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


@dataclass(frozen=True)
class Code:
    """The code of one symbol: its bit length and the bits, most significant first."""

    symbol: int
    length: int
    bits: int

    def pattern(self) -> str:
        """The code as a string of '0' and '1' characters."""
        return format(self.bits, f"0{self.length}b") if self.length else ""


CodeSource = Union[Mapping[int, Code], Iterable[Code]]


def _codes_of(codes: CodeSource) -> list[Code]:
    values = codes.values() if isinstance(codes, Mapping) else codes
    return sorted(values, key=lambda code: code.symbol)


def count_symbols(chunks: Iterable[bytes]) -> Counter:
    """Count how often each byte value occurs across the given chunks."""
    counts: Counter = Counter()
    for chunk in chunks:
        counts.update(chunk)
    return counts


def _insert_ordered(nodes: list[HuffmanNode], node: HuffmanNode) -> None:
    # Placed before the first node whose count is not smaller.
    position = next(
        (index for index, current in enumerate(nodes) if current.count >= node.count),
        len(nodes),
    )
    nodes.insert(position, node)


def build_tree(
    frequencies: Mapping[int, int], variant: TreeVariant
) -> Optional[HuffmanNode]:
    """Build a Huffman tree from symbol frequencies; None when there are none."""
    leaves = [
        HuffmanNode(symbol=symbol, count=count)
        for symbol, count in sorted(frequencies.items())
        if count > 0
    ]
    if variant.sorts_leaves:
        nodes: list[HuffmanNode] = []
        for leaf in leaves:
            _insert_ordered(nodes, leaf)
    else:
        nodes = leaves

    while len(nodes) > 1:
        first = nodes.pop(0)
        second = nodes.pop(0)
        if variant.first_goes_right:
            parent = HuffmanNode(variant.internal_symbol, 0, left=second, right=first)
        else:
            parent = HuffmanNode(variant.internal_symbol, 0, left=first, right=second)
        parent.count = first.count + second.count
        _insert_ordered(nodes, parent)

    return nodes[0] if nodes else None


def code_table(root: Optional[HuffmanNode]) -> dict[int, Code]:
    """Derive the code of every leaf, keyed and ordered by symbol."""
    table: dict[int, Code] = {}
    if root is None:
        return table
    pending = [(root, 0, 0)]
    while pending:
        node, length, bits = pending.pop()
        if node.is_leaf():
            table[node.symbol] = Code(node.symbol, length, bits)
            continue
        if node.right is not None:
            pending.append((node.right, length + 1, (bits << 1) | 1))
        if node.left is not None:
            pending.append((node.left, length + 1, bits << 1))
    return dict(sorted(table.items()))


def tree_from_codes(codes: CodeSource) -> HuffmanNode:
    """Rebuild a decoding tree from a code table."""
    root = HuffmanNode()
    root_is_symbol = False
    for code in _codes_of(codes):
        if code.length < 0:
            raise ValueError(f"negative code length for symbol {code.symbol}")
        node = root
        for bit in code.pattern():
            if root_is_symbol or (node is not root and node.is_leaf() and node.count):
                raise ValueError("code table is not prefix-free")
            if bit == "1":
                if node.right is None:
                    node.right = HuffmanNode()
                node = node.right
            else:
                if node.left is None:
                    node.left = HuffmanNode()
                node = node.left
        if not node.is_leaf() or node.count:
            raise ValueError("code table is not prefix-free")
        if node is root:
            root_is_symbol = True
        node.symbol = code.symbol
        # A non-zero count marks a node as an assigned leaf while building.
        node.count = 1
    return root


def encode(data: bytes, codes: Mapping[int, Code]) -> bytes:
    """Pack the codes of the given bytes, padding the last byte with zeros.

    Bytes without a code are skipped.
    """
    patterns = {symbol: code.pattern() for symbol, code in codes.items()}
    bits = "".join(patterns.get(byte, "") for byte in data)
    if not bits:
        return b""
    padding = -len(bits) % 8
    bits += "0" * padding
    return int(bits, 2).to_bytes(len(bits) // 8, "big")


def decode(data: bytes, root: Optional[HuffmanNode], count: int) -> bytes:
    """Decode up to ``count`` symbols from packed bits.

    Decoding stops early when the data runs out; a bit path that leads
    nowhere in the tree raises ValueError.
    """
    if count <= 0:
        return b""
    if root is None:
        raise ValueError("cannot decode without a tree")
    if root.is_leaf():
        return bytes([root.symbol]) * count
    out = bytearray()
    node = root
    for byte in data:
        for shift in range(7, -1, -1):
            node = node.right if (byte >> shift) & 1 else node.left
            if node is None:
                raise ValueError("compressed data holds a code missing from the table")
            if node.is_leaf():
                out.append(node.symbol)
                if len(out) == count:
                    return bytes(out)
                node = root
    return bytes(out)


def write_header(
    stream: BinaryIO, file_count: int, total_length: int, codes: CodeSource
) -> None:
    """Write the archive header: file count, total length and the code table."""
    entries = _codes_of(codes)
    stream.write(_HEADER.pack(file_count, total_length, len(entries)))
    for code in entries:
        stream.write(_ENTRY.pack(code.symbol, code.bits, code.length))


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunk = stream.read(size)
    if len(chunk) != size:
        raise ValueError("archive header is truncated")
    return chunk


def read_header(stream: BinaryIO) -> tuple[int, int, dict[int, Code]]:
    """Read an archive header; returns file count, total length and codes."""
    file_count, total_length, entries = _HEADER.unpack(
        _read_exact(stream, _HEADER.size)
    )
    if entries < 0:
        raise ValueError("archive header has a negative table size")
    codes: dict[int, Code] = {}
    for _ in range(entries):
        symbol, bits, length = _ENTRY.unpack(_read_exact(stream, _ENTRY.size))
        codes[symbol] = Code(symbol, length, bits)
    return file_count, total_length, codes