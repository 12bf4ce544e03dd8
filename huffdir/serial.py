"""Single-pass directory archiver: every file is coded one after another."""

from __future__ import annotations

import os
import shutil
import struct
import sys
import time
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional, Union

from huffdir.huffman import (
    Code,
    HuffmanNode,
    TreeVariant,
    build_tree,
    code_table,
    count_symbols,
    encode,
    read_header,
    tree_from_codes,
    write_header,
)

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_ARCHIVE = "CompressedFile.bin"
DEFAULT_DIRECTORY = "CompressedFile"

_NAME_LENGTH = struct.Struct("<i")
_SYMBOL_COUNT = struct.Struct("<I")


@dataclass(frozen=True)
class ArchiveEntry:
    """One file held in an archive: its name and its uncompressed contents."""

    name: str
    content: bytes

    @property
    def count(self) -> int:
        """Number of bytes in the uncompressed file."""
        return len(self.content)


def list_files(directory: PathLike) -> list[Path]:
    """The regular files directly inside ``directory``, ordered by name."""
    base = Path(directory)
    return sorted(
        (entry for entry in base.iterdir() if entry.is_file()),
        key=lambda entry: entry.name,
    )


def _codes_for(contents: Iterable[bytes], variant: TreeVariant) -> dict[int, Code]:
    """The code table built from the symbol counts of ``contents``."""
    return code_table(build_tree(count_symbols(contents), variant))


def compress_directory(directory: PathLike, output: PathLike) -> list[ArchiveEntry]:
    """Compress every file of ``directory`` into the archive ``output``."""
    entries = [
        ArchiveEntry(path.name, path.read_bytes()) for path in list_files(directory)
    ]
    codes = _codes_for((entry.content for entry in entries), TreeVariant.SERIAL)
    total = sum(entry.count for entry in entries)

    with open(output, "wb") as stream:
        write_header(stream, len(entries), total, codes)
        for entry in entries:
            raw_name = os.fsencode(entry.name)
            stream.write(_NAME_LENGTH.pack(len(raw_name)))
            stream.write(raw_name)
            stream.write(_SYMBOL_COUNT.pack(entry.count))
            stream.write(encode(entry.content, codes))
    return entries


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunk = stream.read(size)
    if len(chunk) != size:
        raise ValueError("archive is truncated")
    return chunk


def _unpack(stream: BinaryIO, layout: struct.Struct) -> tuple:
    return layout.unpack(_read_exact(stream, layout.size))


def _open_archive(path: PathLike) -> tuple[BinaryIO, Optional[HuffmanNode], int]:
    """Read an archive's header; returns the stream after it, the tree and the file count."""
    stream = BytesIO(Path(path).read_bytes())
    file_count, _total, codes = read_header(stream)
    if file_count < 0:
        raise ValueError("archive header has a negative file count")
    root = tree_from_codes(codes) if codes else None
    return stream, root, file_count


def _decode_segment(
    stream: BinaryIO, root: Optional[HuffmanNode], count: int
) -> bytes:
    """Decode ``count`` symbols from ``stream``, consuming whole bytes only."""
    if count == 0:
        return b""
    if root is None:
        raise ValueError("archive has no code table for its data")
    if root.is_leaf():
        return bytes([root.symbol]) * count
    out = bytearray()
    node = root
    while len(out) < count:
        (byte,) = _read_exact(stream, 1)
        for shift in range(7, -1, -1):
            node = node.right if (byte >> shift) & 1 else node.left
            if node is None:
                raise ValueError("compressed data holds a code missing from the table")
            if node.is_leaf():
                out.append(node.symbol)
                node = root
                if len(out) == count:
                    break
    return bytes(out)


def read_archive(path: PathLike) -> list[ArchiveEntry]:
    """Read and decode every file stored in the archive at ``path``."""
    stream, root, file_count = _open_archive(path)
    entries = []
    for _ in range(file_count):
        (name_length,) = _unpack(stream, _NAME_LENGTH)
        if name_length < 0:
            raise ValueError("archive holds a negative name length")
        raw_name = _read_exact(stream, name_length)
        (count,) = _unpack(stream, _SYMBOL_COUNT)
        entries.append(
            ArchiveEntry(os.fsdecode(raw_name), _decode_segment(stream, root, count))
        )
    return entries


def _safe_name(name: str) -> str:
    separators = {"/", os.sep, "\0"} | ({os.altsep} if os.altsep else set())
    if not name or name in (".", "..") or any(sep in name for sep in separators):
        raise ValueError(f"archive holds an unsafe file name: {name!r}")
    return name


def decompress_archive(archive: PathLike, directory: PathLike) -> list[Path]:
    """Restore every file of ``archive`` into ``directory``; returns the paths written."""
    entries = read_archive(archive)
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    written = []
    for entry in entries:
        path = target / _safe_name(entry.name)
        path.write_bytes(entry.content)
        written.append(path)
    return written


def clear_directory(path: PathLike) -> None:
    """Remove everything inside ``path``, leaving the directory itself."""
    for entry in Path(path).iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def _argv(argv: Optional[list[str]]) -> list[str]:
    return sys.argv[1:] if argv is None else list(argv)


def _two_arguments(
    args: list[str],
    *,
    usage: str,
    too_many: str,
    too_few: str,
    default: str,
    default_note: str,
) -> Optional[tuple[str, str]]:
    """Split ``args`` into a required and an optional value, or report misuse."""
    if len(args) > 2:
        message = too_many
    elif not args:
        message = too_few
    elif len(args) == 1:
        print(default_note)
        return args[0], default
    else:
        return args[0], args[1]
    print(message)
    print(usage)
    return None


def _timed(
    action: Callable[[], object],
    failure: str,
    label: str,
    errors: tuple[type[Exception], ...] = (OSError,),
) -> int:
    """Run ``action``, report its duration and return an exit status."""
    start = time.perf_counter()
    try:
        action()
    except errors as error:
        print(f"{failure}: {error}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start
    print(f"Total {label} time: {elapsed:f} seconds")
    return 0


def compress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: compress <directory> [archive]."""
    args = _argv(argv)
    if not args:
        print("Usage: compress <directory> [archive]")
        return 1
    directory = args[0]
    output = args[1] if len(args) == 2 else DEFAULT_ARCHIVE
    return _timed(
        lambda: compress_directory(directory, output),
        f"Cannot compress {directory}",
        "serial compression",
    )


def _choose_directory(directory: str) -> str:
    while Path(directory).is_dir():
        answer = input(
            f"The directory '{directory}' already exists. "
            "Do you want to replace it? (s/n): "
        )
        if answer[:1] in ("s", "S"):
            clear_directory(directory)
            Path(directory).rmdir()
            print(f"Directory '{directory}' deleted.")
            break
        directory = input("Enter a new name for the directory: ").strip()
    return directory


def decompress_main(argv: Optional[list[str]] = None) -> int:
    """Command line entry: decompress <archive> [directory]."""
    parsed = _two_arguments(
        _argv(argv),
        usage="Correct Usage: decompress <Compressed File Name> <Directory Name>",
        too_many="Expecting less arguments",
        too_few="Not enough arguments passed",
        default=DEFAULT_DIRECTORY,
        default_note=(
            "Directory argument not given using the default name: "
            f"'{DEFAULT_DIRECTORY}'"
        ),
    )
    if parsed is None:
        return 1
    archive, directory = parsed

    try:
        directory = _choose_directory(directory)
    except EOFError:
        print("No answer given", file=sys.stderr)
        return 1
    except OSError as error:
        print(f"Error deleting the directory: {error}", file=sys.stderr)
        return 1

    try:
        Path(directory).mkdir()
        print(f"Directory successfully created: {directory}")
    except OSError as error:
        print(f"Error creating the directory: {error}", file=sys.stderr)

    return _timed(
        lambda: decompress_archive(archive, directory),
        f"Cannot decompress {archive}",
        "serial decompression",
        (OSError, ValueError),
    )