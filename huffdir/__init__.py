"""Huffman compression of whole directories into a single archive, with serial, process and thread engines."""

__version__ = "0.1.0"
__all__ = ["huffman", "serial", "forked", "threaded"]