"""
Trace Parser

Unified trace reader/writer supporting the text and packed event formats.
Handles compressed traces and provides a streaming interface.
"""

import bz2
import gzip
import lzma
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from .formats import TraceFormat, BranchRecord, TextTraceFormat, EventTraceFormat
from ..errors import ConfigError, ParseError


@dataclass
class TraceInfo:
    """Information about a trace file."""
    path: str
    format: str
    compression: Optional[str]
    size_bytes: int
    estimated_branches: int


class BranchTrace:
    """
    In-memory branch trace.

    Unlike a parse_file() stream it can be iterated any number of times,
    so several runs can share it read-only.
    """

    def __init__(self, records: Optional[List[BranchRecord]] = None):
        self._records = list(records) if records is not None else []

    def add(self, record: BranchRecord) -> None:
        """Add a branch record."""
        self._records.append(record)

    def __iter__(self) -> Iterator[BranchRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, idx: int) -> BranchRecord:
        return self._records[idx]

    def get_statistics(self) -> dict:
        """Get trace statistics."""
        if not self._records:
            return {'count': 0}

        taken_count = sum(1 for r in self._records if r.taken)
        unique_pcs = len(set(r.pc for r in self._records))
        instructions = sum(r.instructions for r in self._records)

        return {
            'count': len(self._records),
            'taken': taken_count,
            'not_taken': len(self._records) - taken_count,
            'taken_ratio': taken_count / len(self._records),
            'unique_pcs': unique_pcs,
            'instructions': instructions,
        }


class TraceParser:
    """
    Unified trace parser with format detection and decompression.
    """

    # Supported formats
    FORMATS = {
        'text': TextTraceFormat,
        'event': EventTraceFormat,
    }

    # Compression handlers
    COMPRESSION = {
        '.gz': gzip.open,
        '.gzip': gzip.open,
        '.xz': lzma.open,
        '.bz2': bz2.open,
        '.lzma': lzma.open,
    }

    TEXT_SUFFIXES = ('.txt', '.trace')

    def __init__(self, format_name: Optional[str] = None):
        """
        Initialize parser.

        Args:
            format_name: Force specific format (auto-detect if None)
        """
        if format_name and format_name.lower() not in self.FORMATS:
            raise ConfigError(
                f"Unknown trace format: {format_name!r} "
                f"(expected one of {', '.join(self.FORMATS)})")
        self.format_name = format_name.lower() if format_name else None

    def parse_file(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> Iterator[BranchRecord]:
        """
        Parse a trace file.

        Records are produced lazily; a malformed record raises ParseError
        at the point it is reached.

        Args:
            filepath: Path to trace file
            max_branches: Maximum branches to read (None = all)
            skip_branches: Number of branches to skip

        Yields:
            BranchRecord for each branch
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"Trace file not found: {filepath}")

        if max_branches is not None and max_branches <= 0:
            return

        format_obj = self._get_format(filepath)
        file_handle = self._open(filepath, format_obj, write=False)

        try:
            count = 0
            skipped = 0

            for record in self._guarded(format_obj.parse(file_handle, str(filepath)),
                                        filepath):
                # Skip warmup branches
                if skipped < skip_branches:
                    skipped += 1
                    continue

                yield record
                count += 1

                # Check limit
                if max_branches is not None and count >= max_branches:
                    break

        finally:
            file_handle.close()

    def load_trace(self, filepath: Union[str, Path],
                   max_branches: Optional[int] = None,
                   skip_branches: int = 0) -> BranchTrace:
        """
        Load entire trace into memory.

        Args:
            filepath: Path to trace file
            max_branches: Maximum branches to load
            skip_branches: Branches to skip

        Returns:
            BranchTrace with all records
        """
        records = list(self.parse_file(filepath, max_branches, skip_branches))
        return BranchTrace(records)

    def write_file(self, filepath: Union[str, Path],
                   records: Iterable[BranchRecord]) -> int:
        """
        Write records in the format this parser would read the path with.

        Returns:
            Number of records written
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        format_obj = self._get_format(filepath)
        with self._open(filepath, format_obj, write=True) as file_handle:
            return format_obj.write(file_handle, records)

    def get_trace_info(self, filepath: Union[str, Path]) -> TraceInfo:
        """Get information about a trace file."""
        filepath = Path(filepath)

        compression = self._compression(filepath)
        size = filepath.stat().st_size
        format_name = self.format_name or self._detect_format(filepath)

        # Compressed files: assume ~4x compression
        raw_size = size * 4 if compression else size
        if format_name == 'event':
            estimated = max(0, raw_size - EventTraceFormat.HEADER_SIZE) // \
                EventTraceFormat.EVENT_SIZE
        else:
            estimated = raw_size // 10  # ~10 bytes per text line

        return TraceInfo(
            path=str(filepath),
            format=format_name,
            compression=compression[1:] if compression else None,
            size_bytes=size,
            estimated_branches=estimated
        )

    def _guarded(self, records: Iterator[BranchRecord],
                 filepath: Path) -> Iterator[BranchRecord]:
        """Report undecodable or corrupt compressed input as ParseError."""
        try:
            yield from records
        except UnicodeDecodeError as e:
            raise ParseError(f"not a text trace ({e.reason})",
                             source=str(filepath)) from e
        except (EOFError, OSError, lzma.LZMAError) as e:
            raise ParseError(f"corrupt compressed trace: {e}",
                             source=str(filepath)) from e

    def _open(self, filepath: Path, format_obj: TraceFormat, write: bool):
        mode = ('w' if write else 'r') + ('b' if format_obj.binary else 't')
        compression = self._compression(filepath)
        opener = self.COMPRESSION[compression] if compression else open
        if format_obj.binary:
            return opener(filepath, mode)
        return opener(filepath, mode, encoding='ascii')

    def _compression(self, filepath: Path) -> Optional[str]:
        suffix = filepath.suffix.lower()
        return suffix if suffix in self.COMPRESSION else None

    def _get_format(self, filepath: Path) -> TraceFormat:
        """Get format parser for file."""
        format_name = self.format_name or self._detect_format(filepath)
        return self.FORMATS[format_name]()

    def _detect_format(self, filepath: Path) -> str:
        """Detect trace format from filename."""
        effective = filepath
        if self._compression(filepath):
            effective = filepath.with_suffix('')

        if effective.suffix.lower() in self.TEXT_SUFFIXES:
            return 'text'
        return 'event'

    @classmethod
    def list_supported_formats(cls) -> List[str]:
        """List supported trace formats."""
        return list(cls.FORMATS.keys())

    @classmethod
    def list_supported_compressions(cls) -> List[str]:
        """List supported compression formats."""
        return [ext[1:] for ext in cls.COMPRESSION.keys()]
