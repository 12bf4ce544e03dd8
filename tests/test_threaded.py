import struct
from collections import Counter

import pytest

from huffdir.huffman import (
    TreeVariant,
    build_tree,
    code_table,
    encode,
    read_header,
    tree_from_codes,
    write_header,
)
from huffdir.threaded import (
    FileInfo,
    Segment,
    compress_directory,
    compress_main,
    decompress_archive,
    decompress_main,
    scan_segments,
)


def _make_dir(root, files):
    root.mkdir()
    for name, content in files.items():
        (root / name).write_bytes(content)
    return root


def _restored(directory):
    return {
        str(path.relative_to(directory)): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def test_round_trip_several_files(tmp_path):
    files = {
        "one.txt": b"the quick brown fox jumps over the lazy dog\n",
        "two.txt": b"hello hello hello world",
        "three.bin": bytes(range(256)) * 3,
    }
    source = _make_dir(tmp_path / "src", files)
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    decompress_archive(archive, tmp_path / "dst")
    assert _restored(tmp_path / "dst") == files


def test_compress_reports_file_info(tmp_path):
    source = _make_dir(tmp_path / "src", {"a": b"aab", "b": b"bc"})
    infos = compress_directory(source, tmp_path / "out.bin")
    assert [info.name for info in infos] == ["a", "b"]
    assert [info.size for info in infos] == [3, 2]
    assert infos[0].frequencies == Counter(b"aab")
    assert all(isinstance(info, FileInfo) for info in infos)


def test_archive_layout_worked_example(tmp_path):
    source = _make_dir(tmp_path / "src", {"a": b"ab"})
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    expected = (
        struct.pack("<iqi", 1, 2, 2)
        + struct.pack("<BQB", 97, 1, 1)
        + struct.pack("<BQB", 98, 0, 1)
        + struct.pack("<I", 1)
        + b"a"
        + struct.pack("<I", 2)
        + b"\x80"
    )
    assert archive.read_bytes() == expected


def test_header_totals(tmp_path):
    files = {"x": b"abcabc", "y": b"zz"}
    source = _make_dir(tmp_path / "src", files)
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    with open(archive, "rb") as stream:
        count, total, codes = read_header(stream)
    assert count == len(files)
    assert total == sum(len(v) for v in files.values())
    assert sorted(codes) == sorted(set(b"abcz"))


def test_scan_segments_offsets_are_contiguous(tmp_path):
    files = {"a.txt": b"some text here", "b.txt": b"more text", "c.txt": b"t"}
    source = _make_dir(tmp_path / "src", files)
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    with open(archive, "rb") as stream:
        _count, total, codes = read_header(stream)
        segments = scan_segments(stream, tree_from_codes(codes), total)
        end = stream.tell()
    assert [s.name for s in segments] == ["a.txt", "b.txt", "c.txt"]
    assert [s.count for s in segments] == [len(files[s.name]) for s in segments]
    for first, second in zip(segments, segments[1:]):
        assert second.offset == first.offset + first.length + 4 + len(second.name) + 4
    assert end == segments[-1].offset + segments[-1].length
    assert end == archive.stat().st_size
    assert all(isinstance(s, Segment) for s in segments)


def test_single_symbol_file(tmp_path):
    source = _make_dir(tmp_path / "src", {"same": b"aaaaaaa"})
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    decompress_archive(archive, tmp_path / "dst")
    assert (tmp_path / "dst" / "same").read_bytes() == b"aaaaaaa"


def test_leading_empty_file_is_restored(tmp_path):
    files = {"a": b"", "b": b"hi there"}
    source = _make_dir(tmp_path / "src", files)
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    decompress_archive(archive, tmp_path / "dst")
    assert _restored(tmp_path / "dst") == files


def test_trailing_empty_file_is_not_restored(tmp_path):
    source = _make_dir(tmp_path / "src", {"a.txt": b"xy", "b.txt": b""})
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    written = decompress_archive(archive, tmp_path / "dst")
    assert [p.name for p in written] == ["a.txt"]
    assert _restored(tmp_path / "dst") == {"a.txt": b"xy"}


def test_empty_directory_is_an_error(tmp_path):
    (tmp_path / "src").mkdir()
    with pytest.raises(ValueError):
        compress_directory(tmp_path / "src", tmp_path / "out.bin")


def _handmade_archive(path, records):
    data = b"".join(records.values())
    codes = code_table(build_tree(Counter(data), TreeVariant.THREADED))
    with open(path, "wb") as stream:
        write_header(stream, len(records), len(data), codes)
        for name, content in records.items():
            raw = name.encode()
            stream.write(struct.pack("<I", len(raw)) + raw)
            stream.write(struct.pack("<I", len(content)))
            stream.write(encode(content, codes))


def test_nested_names_create_directories(tmp_path):
    archive = tmp_path / "nested.bin"
    _handmade_archive(archive, {"sub/inner.txt": b"nested data", "top.txt": b"top"})
    decompress_archive(archive, tmp_path / "dst")
    assert (tmp_path / "dst" / "sub" / "inner.txt").read_bytes() == b"nested data"
    assert (tmp_path / "dst" / "top.txt").read_bytes() == b"top"


def test_unsafe_name_is_rejected(tmp_path):
    archive = tmp_path / "evil.bin"
    _handmade_archive(archive, {"../escape.txt": b"bad"})
    with pytest.raises(ValueError):
        decompress_archive(archive, tmp_path / "dst")
    assert not (tmp_path / "escape.txt").exists()


def test_truncated_archive_is_rejected(tmp_path):
    source = _make_dir(tmp_path / "src", {"a": b"abcdefghijklmnop" * 4})
    archive = tmp_path / "out.bin"
    compress_directory(source, archive)
    data = archive.read_bytes()
    archive.write_bytes(data[:-3])
    with pytest.raises(ValueError):
        decompress_archive(archive, tmp_path / "dst")


def test_compress_main_without_arguments_fails():
    assert compress_main([]) == 1


def test_decompress_main_bad_argument_count():
    assert decompress_main([]) == 1
    assert decompress_main(["a", "b", "c"]) == 1


def test_mains_round_trip_and_replace_directory(tmp_path):
    files = {"f1": b"alpha beta", "f2": b"gamma"}
    source = _make_dir(tmp_path / "src", files)
    archive = tmp_path / "arch.bin"
    target = tmp_path / "dst"
    target.mkdir()
    (target / "stale.txt").write_bytes(b"old")
    assert compress_main([str(source), str(archive)]) == 0
    assert decompress_main([str(archive), str(target)]) == 0
    assert _restored(target) == files


def test_compress_main_empty_directory(tmp_path):
    (tmp_path / "src").mkdir()
    assert compress_main([str(tmp_path / "src"), str(tmp_path / "o.bin")]) == 1