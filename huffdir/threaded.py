"""Directory archiver that counts, codes and restores files on worker threads."""

from __future__ import annotations

import os
import shutil
import struct
import sys
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from itertools import repeat
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Mapping, Optional, Union

from huffdir.huffman import (
    Code,
    HuffmanNode,
    TreeVariant,
    build_tree,
    code_table,
    decode,
    encode,
    read_header,
    tree_from_codes,
    write_header,
)
from huffdir.serial import list_files

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_ARCHIVE = "CompressedFile.bin"
DEFAULT_DIRECTORY = "CompressedFile"

_U32 = struct.Struct("<I")


@dataclass
class FileInfo:
    """A file taking part in compression and what the workers learnt about it."""

    path: Path
    name: str
    size: int = 0
    frequencies: Counter = field(default_factory=Counter)
    compressed_data: bytes = b""


@dataclass(frozen=True)
class Segment:
    """Where one file's packed bits sit inside an archive."""

    name: str
    count: int
    offset: int
    length: int


def _count_file(path: Path) -> tuple[int, Counter]:
    data = path.read_bytes()
    return len(data), Counter(data)


def _compress_file(path: Path, codes: Mapping[int, Code]) -> bytes:
    return encode(path.read_bytes(), codes)


def compress_directory(directory: PathLike, output: PathLike) -> list[FileInfo]:
    """Compress every file of ``directory`` into ``output``.

    Raises ValueError when the directory holds no files.
    """
    files = [FileInfo(path, path.name) for path in list_files(directory)]
    if not files:
        raise ValueError("no files to compress")

    with ThreadPoolExecutor() as pool:
        counted = list(pool.map(_count_file, [info.path for info in files]))
    frequencies: Counter = Counter()
    for info, (size, local) in zip(files, counted):
        info.size = size
        info.frequencies = local
        frequencies.update(local)
    total = sum(info.size for info in files)

    codes = code_table(build_tree(frequencies, TreeVariant.THREADED))

    with ThreadPoolExecutor() as pool:
        packed = list(
            pool.map(_compress_file, [info.path for info in files], repeat(codes))
        )
    for info, data in zip(files, packed):
        info.compressed_data = data

    with open(output, "wb") as stream:
        write_header(stream, len(files), total, codes)
        for info in files:
            raw_name = os.fsencode(info.name)
            stream.write(_U32.pack(len(raw_name)))
            stream.write(raw_name)
            stream.write(_U32.pack(info.size))
            stream.write(info.compressed_data)
    return files


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunk = stream.read(size)
    if len(chunk) != size:
        raise ValueError("archive is truncated")
    return chunk


def _skip_symbols(stream: BinaryIO, root: Optional[HuffmanNode], count: int) -> int:
    """Walk past ``count`` coded symbols; returns the number of bytes they take."""
    if count == 0:
        return 0
    if root is None:
        raise ValueError("archive has no code table for its data")
    if root.is_leaf():
        return 0
    consumed = 0
    remaining = count
    node = root
    while remaining:
        byte = _read_exact(stream, 1)[0]
        consumed += 1
        for shift in range(7, -1, -1):
            node = node.right if (byte >> shift) & 1 else node.left
            if node is None:
                raise ValueError("compressed data holds a code missing from the table")
            if node.is_leaf():
                remaining -= 1
                node = root
                if not remaining:
                    break
    return consumed


def scan_segments(
    stream: BinaryIO, root: Optional[HuffmanNode], total: int
) -> list[Segment]:
    """Locate file records after the header until ``total`` characters are covered."""
    segments = []
    while total > 0:
        raw = stream.read(_U32.size)
        if len(raw) != _U32.size:
            break
        (name_length,) = _U32.unpack(raw)
        name = os.fsdecode(_read_exact(stream, name_length))
        (count,) = _U32.unpack(_read_exact(stream, _U32.size))
        offset = stream.tell()
        length = _skip_symbols(stream, root, count)
        total -= count
        segments.append(Segment(name, count, offset, length))
    return segments


def _target_path(directory: Path, name: str) -> Path:
    relative = PurePosixPath(name)
    if (
        not name
        or "\0" in name
        or relative.is_absolute()
        or ".." in relative.parts
        or not relative.parts
        or (os.sep != "/" and os.sep in name)
    ):
        raise ValueError(f"archive holds an unsafe file name: {name!r}")
    return directory.joinpath(*relative.parts)


def _restore(
    archive: str, segment: Segment, root: Optional[HuffmanNode], target: Path
) -> Path:
    with open(archive, "rb") as stream:
        stream.seek(segment.offset)
        data = stream.read(segment.length)
    content = decode(data, root, segment.count)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return target


def decompress_archive(archive: PathLike, directory: PathLike) -> list[Path]:
    """Restore the files of ``archive`` into ``directory``, one thread each."""
    with open(archive, "rb") as stream:
        _file_count, total, codes = read_header(stream)
        root = tree_from_codes(codes) if codes else None
        segments = scan_segments(stream, root, total)

    base = Path(directory)
    targets = [_target_path(base, segment.name) for segment in segments]
    base.mkdir(parents=True, exist_ok=True)
    if not segments:
        return []
    with ThreadPoolExecutor() as pool:
        return list(
            pool.map(
                _restore, repeat(os.fspath(archive)), segments, repeat(root), targets
            )
        )


def compress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: compress <directory> [archive]."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: compress <Directory> [OutputFile]", file=sys.stderr)
        return 1
    directory = args[0]
    output = args[1] if len(args) == 2 else DEFAULT_ARCHIVE

    start = time.perf_counter()
    try:
        compress_directory(directory, output)
    except ValueError:
        print("No files to compress.", file=sys.stderr)
        return 1
    except OSError as error:
        print(f"Cannot compress {directory}: {error}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start
    print(f"Total threaded compression time: {elapsed:f} seconds")
    return 0


def decompress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: decompress <archive> [directory]."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not 1 <= len(args) <= 2:
        print("Usage: decompress <Compressed File> [Output Directory]", file=sys.stderr)
        return 1
    archive = args[0]
    directory = args[1] if len(args) == 2 else DEFAULT_DIRECTORY

    try:
        if Path(directory).is_dir():
            shutil.rmtree(directory)
        Path(directory).mkdir(parents=True, exist_ok=True)
    except OSError as error:
        print(f"Cannot prepare {directory}: {error}", file=sys.stderr)
        return 1

    start = time.perf_counter()
    try:
        decompress_archive(archive, directory)
    except (OSError, ValueError) as error:
        print(f"Cannot decompress {archive}: {error}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start
    print(f"Total threaded decompression time: {elapsed:.6f} seconds")
    return 0