# huffdir

huffdir packs every file in a directory into one Huffman-coded archive and
unpacks it again. The package builds one code table from the byte frequencies
of all the files together and uses that table for every file.

There are three engines:

| Engine   | How the work is split                          | Commands                                               |
|----------|------------------------------------------------|--------------------------------------------------------|
| serial   | one file after another                         | `huffdir-serial-compress`, `huffdir-serial-decompress` |
| fork     | a pool of worker processes, one task per file  | `huffdir-fork-compress`, `huffdir-fork-decompress`     |
| threaded | a pool of threads for counting and for coding  | `huffdir-thread-compress`, `huffdir-thread-decompress` |

All three engines write the same header, which holds the file count, the total
length and the code table. The per-file records are not all the same:

- Serial and threaded records use the same layout: the name length, the name,
  the character count and the packed bits. Either engine can unpack an archive
  that the other one wrote.
- Fork records also store the size of the packed data as 64-bit fields. A fork
  archive can only be unpacked by the fork engine.

## Installing

```
pip install .
```

The package uses only the standard library. To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

To compress a directory, give the directory and the archive name. If you leave
out the archive name, the archive is written to `CompressedFile.bin`:

```
huffdir-serial-compress books/ books.bin
huffdir-fork-compress books/ books.bin
huffdir-thread-compress books/ books.bin
```

`huffdir-thread-compress` fails with "No files to compress." when the
directory is empty.

To unpack an archive, give the archive and a target directory:

```
huffdir-serial-decompress books.bin restored/
huffdir-fork-decompress books.bin restored/
huffdir-thread-decompress books.bin restored/
```

If you leave out the target directory, each engine uses a default name:

- serial and threaded: `CompressedFile`
- fork: `UnCompressedDirectory`

The engines treat an existing target directory differently:

- **Serial:** the decompressor asks whether to replace the directory. If you
  answer `s` or `S`, it deletes the directory and creates it again. If you give
  any other answer, it asks for a new name.
- **Threaded:** the decompressor deletes the directory and creates it again
  without asking.
- **Fork:** the decompressor writes into the directory as it is, and creates it
  if it is missing.

Every command prints the elapsed time when it succeeds. If it fails, it prints
an error to standard error and exits with status 1.

## Library use

The coding primitives are in `huffdir.huffman`:

```python
from huffdir.huffman import TreeVariant, build_tree, code_table, count_symbols, decode, encode

frequencies = count_symbols([b"abracadabra"])
root = build_tree(frequencies, TreeVariant.SERIAL)
codes = code_table(root)
packed = encode(b"abracadabra", codes)
assert decode(packed, root, 11) == b"abracadabra"
```

`TreeVariant` has three members: `SERIAL`, `FORK` and `THREADED`. Each member
sets how the leaves are ordered and how merged pairs are attached. Each engine
uses its own variant.

The same module has these helpers:

- `tree_from_codes` rebuilds a decoding tree from a table of `Code` entries. It
  raises `ValueError` when the table is not prefix-free.
- `write_header` writes the shared archive header and `read_header` reads it.

Each engine module provides `compress_directory(directory, output)` and
`decompress_archive(archive, directory)`. The modules also have these helpers:

- `huffdir.serial`: `read_archive` returns the `ArchiveEntry` records, already
  decoded. `list_files` lists the files that would be archived.
  `clear_directory` empties a directory.
- `huffdir.forked`: `compress_file` builds the record for one file.
  `read_archive` returns the decoding tree together with the `Book` records.
  `decompress_book` restores a single book.
- `huffdir.threaded`: `scan_segments` finds the `Segment` of each file inside
  an open archive. `compress_directory` returns a `FileInfo` for each file.

A malformed archive raises `ValueError`. This covers a truncated archive, a
code that is missing from the table, and an unsafe file name.

## What it does not do

- Only the regular files directly inside the source directory are archived.
  The engines do not descend into subdirectories.
- An archive holds no checksums and no file metadata such as permissions or
  timestamps. Only names and contents are restored.
- The threaded decompressor stops once the total character count from the
  header has been restored. Empty files that come after that point are not
  recreated.