"""Directory archiver that codes and restores each file in its own process."""

from __future__ import annotations

import os
import struct
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from itertools import repeat
from pathlib import Path
from typing import Mapping, Optional

from huffdir.huffman import (
    Code,
    HuffmanNode,
    TreeVariant,
    decode,
    encode,
    write_header,
)
from huffdir.serial import (
    DEFAULT_ARCHIVE,
    PathLike,
    _argv,
    _codes_for,
    _open_archive,
    _read_exact,
    _safe_name,
    _timed,
    _two_arguments,
    _unpack,
    list_files,
)

DEFAULT_DIRECTORY = "UnCompressedDirectory"

_NAME_LENGTH = struct.Struct("<I")
_SIZES = struct.Struct("<QQ")


@dataclass(frozen=True)
class Book:
    """One archived file: its title, original length and packed bits."""

    title: str
    total_characters: int
    compressed_data: bytes

    @property
    def compressed_size(self) -> int:
        """Number of bytes of packed bits."""
        return len(self.compressed_data)


def compress_file(path: PathLike, name: str, codes: Mapping[int, Code]) -> bytes:
    """Code one file and return its archive record.

    The record holds the name length, the name, the number of characters,
    the number of packed bytes and the packed bytes themselves.
    """
    data = Path(path).read_bytes()
    packed = encode(data, codes)
    raw_name = os.fsencode(name)
    return (
        _NAME_LENGTH.pack(len(raw_name))
        + raw_name
        + _SIZES.pack(len(data), len(packed))
        + packed
    )


def compress_directory(directory: PathLike, output: PathLike) -> list[Path]:
    """Compress every file of ``directory`` into ``output``; returns the files archived."""
    paths = list_files(directory)
    contents = [path.read_bytes() for path in paths]
    codes = _codes_for(contents, TreeVariant.FORK)
    total = sum(len(content) for content in contents)

    records: list[bytes] = []
    if paths:
        with ProcessPoolExecutor() as pool:
            records = list(
                pool.map(
                    compress_file,
                    [str(path) for path in paths],
                    [path.name for path in paths],
                    repeat(codes),
                )
            )

    with open(output, "wb") as stream:
        write_header(stream, len(paths), total, codes)
        stream.writelines(records)
    return paths


def read_archive(path: PathLike) -> tuple[Optional[HuffmanNode], list[Book]]:
    """Read an archive; returns the decoding tree and the books it holds."""
    stream, root, file_count = _open_archive(path)
    books = []
    for _ in range(file_count):
        (name_length,) = _unpack(stream, _NAME_LENGTH)
        title = os.fsdecode(_read_exact(stream, name_length))
        total_characters, compressed_size = _unpack(stream, _SIZES)
        books.append(
            Book(title, total_characters, _read_exact(stream, compressed_size))
        )
    return root, books


def decompress_book(
    book: Book, root: Optional[HuffmanNode], directory: PathLike
) -> Path:
    """Decode one book into ``directory``; returns the path written."""
    target = Path(directory) / _safe_name(book.title)
    target.write_bytes(decode(book.compressed_data, root, book.total_characters))
    return target


def decompress_archive(archive: PathLike, directory: PathLike) -> list[Path]:
    """Restore every book of ``archive`` into ``directory``, one process each."""
    root, books = read_archive(archive)
    for book in books:
        _safe_name(book.title)
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    if not books:
        return []
    with ProcessPoolExecutor() as pool:
        return list(
            pool.map(decompress_book, books, repeat(root), repeat(str(target)))
        )


def _fork_arguments(
    argv: Optional[list[str]], usage: str, default: str, what: str
) -> Optional[tuple[str, str]]:
    return _two_arguments(
        _argv(argv),
        usage=usage,
        too_many="Too many parameters",
        too_few="Not enough parameters given:",
        default=default,
        default_note=f"{what} not given, using: '{default}'",
    )


def compress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: compress <directory> [archive]."""
    parsed = _fork_arguments(
        argv,
        "Usage: compress <Directory to compress> <Compressed file name>",
        DEFAULT_ARCHIVE,
        "Compressed file name",
    )
    if parsed is None:
        return 1
    directory, output = parsed
    return _timed(
        lambda: compress_directory(directory, output),
        f"Cannot compress {directory}",
        "fork compression",
    )


def decompress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: decompress <archive> [directory]."""
    parsed = _fork_arguments(
        argv,
        "Usage: decompress <Compressed File Name> <Directory Name>",
        DEFAULT_DIRECTORY,
        "Output directory",
    )
    if parsed is None:
        return 1
    archive, directory = parsed
    return _timed(
        lambda: decompress_archive(archive, directory),
        f"Cannot decompress {archive}",
        "fork decompression",
        (OSError, ValueError),
    )