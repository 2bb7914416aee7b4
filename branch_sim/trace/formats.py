"""
Trace Format Definitions

Defines the trace file formats accepted by the simulator.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, TextIO

import numpy as np

from ..errors import ParseError

# ASCII hex digits with an optional 0x prefix; no sign, underscores or spaces
HEX_ADDRESS = re.compile(r"(0[xX])?[0-9a-fA-F]+")


@dataclass(frozen=True)
class BranchRecord:
    """Single conditional branch from a trace."""
    pc: int                   # Program counter (branch address)
    taken: bool               # Branch outcome
    instret_delta: int = 0    # Instructions retired since the previous branch

    @property
    def instructions(self) -> int:
        """Instructions this record accounts for, the branch included."""
        return self.instret_delta + 1


class TraceFormat(ABC):
    """Abstract base class for trace formats."""

    binary: bool = False

    @abstractmethod
    def parse(self, file_handle, source: Optional[str] = None) -> Iterator[BranchRecord]:
        """
        Parse trace file and yield branch records.

        Args:
            file_handle: Open file handle
            source: Name used in error messages

        Yields:
            BranchRecord for each branch in trace

        Raises:
            ParseError: on the first malformed record
        """
        pass

    @abstractmethod
    def write(self, file_handle, records: Iterable[BranchRecord]) -> int:
        """Write records, returning how many were written."""
        pass

    @abstractmethod
    def get_format_name(self) -> str:
        """Return format name."""
        pass


class TextTraceFormat(TraceFormat):
    """
    Text trace format.

    Format: ADDRESS OUTCOME, address in hex, outcome 0 or 1
    Example:
        0x400100 1
        400108 0
    Blank lines and lines starting with '#' are ignored.
    """

    def get_format_name(self) -> str:
        return "Text"

    def parse(self, file_handle: TextIO,
              source: Optional[str] = None) -> Iterator[BranchRecord]:
        """Parse text format."""
        for line_num, line in enumerate(file_handle, 1):
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            parts = line.split()
            if len(parts) != 2:
                raise ParseError(
                    f"expected '<address> <0|1>', got {line!r}",
                    source=source, line=line_num)

            address, outcome = parts
            if not HEX_ADDRESS.fullmatch(address):
                raise ParseError(f"invalid hex address {address!r}",
                                 source=source, line=line_num)
            pc = int(address, 16)

            if outcome not in ('0', '1'):
                raise ParseError(f"outcome must be 0 or 1, got {outcome!r}",
                                 source=source, line=line_num)

            yield BranchRecord(pc=pc, taken=outcome == '1')

    def write(self, file_handle: TextIO, records: Iterable[BranchRecord]) -> int:
        count = 0
        for record in records:
            file_handle.write(f"0x{record.pc:x} {int(record.taken)}\n")
            count += 1
        return count


class EventTraceFormat(TraceFormat):
    """
    Packed binary event format.

    A fixed-size header followed by 8-byte little-endian events:
    - bits 0-47:  branch address
    - bits 48-62: instructions retired since the previous branch
    - bit 63:     taken
    """

    binary = True

    HEADER_SIZE = 1024
    EVENT_SIZE = 8
    ADDRESS_MASK = (1 << 48) - 1
    DELTA_MASK = 0x7FFF
    CHUNK_EVENTS = 1 << 16

    def get_format_name(self) -> str:
        return "Event"

    def parse(self, file_handle: BinaryIO,
              source: Optional[str] = None) -> Iterator[BranchRecord]:
        """Parse packed events, decoding a chunk at a time."""
        header = file_handle.read(self.HEADER_SIZE)
        if len(header) < self.HEADER_SIZE:
            raise ParseError(
                f"header is {len(header)} bytes, expected {self.HEADER_SIZE}",
                source=source, offset=0)

        offset = self.HEADER_SIZE
        pending = b''
        chunk_bytes = self.CHUNK_EVENTS * self.EVENT_SIZE

        while True:
            data = file_handle.read(chunk_bytes)
            if not data:
                break

            data = pending + data
            usable = len(data) - len(data) % self.EVENT_SIZE
            pending = data[usable:]
            if not usable:
                continue

            events = np.frombuffer(data[:usable], dtype='<u8')
            addresses = (events & np.uint64(self.ADDRESS_MASK)).tolist()
            deltas = ((events >> np.uint64(48)) &
                      np.uint64(self.DELTA_MASK)).tolist()
            takens = (events >> np.uint64(63)).astype(bool).tolist()

            for pc, taken, delta in zip(addresses, takens, deltas):
                yield BranchRecord(pc=pc, taken=taken, instret_delta=delta)

            offset += usable

        if pending:
            raise ParseError(
                f"truncated event ({len(pending)} of {self.EVENT_SIZE} bytes)",
                source=source, offset=offset)

    def encode(self, record: BranchRecord) -> int:
        if not 0 <= record.pc <= self.ADDRESS_MASK:
            raise ValueError(f"address 0x{record.pc:x} does not fit in 48 bits")
        if not 0 <= record.instret_delta <= self.DELTA_MASK:
            raise ValueError(
                f"instret_delta {record.instret_delta} does not fit in 15 bits")
        return (record.pc |
                (record.instret_delta << 48) |
                (int(record.taken) << 63))

    def write(self, file_handle: BinaryIO, records: Iterable[BranchRecord],
              header: bytes = b'') -> int:
        if len(header) > self.HEADER_SIZE:
            raise ValueError(f"header longer than {self.HEADER_SIZE} bytes")
        file_handle.write(header.ljust(self.HEADER_SIZE, b'\0'))

        events = np.fromiter((self.encode(r) for r in records), dtype=np.uint64)
        file_handle.write(events.astype('<u8').tobytes())
        return len(events)
