"""Splits a file into semantic chunks for embedding."""

from .models import Chunk, Symbol, content_hash


# Symbol kinds that get a chunk of their own
QUALIFYING_KINDS = frozenset({"function", "class", "method"})


def chunk_id(document_id: str, start_line: int) -> str:
    return f"{document_id}::chunk::{start_line}"


def file_chunk_id(document_id: str) -> str:
    return f"{document_id}::file"


def block_chunk_id(document_id: str, start_line: int) -> str:
    return f"{document_id}::block::{start_line}"


class Chunker:
    """Cuts file content into function, class, block and file chunks.

    Attributes:
        min_block_lines: Smallest number of non-blank lines for a block chunk
    """

    def __init__(self, min_block_lines: int = 5):
        self.min_block_lines = min_block_lines

    def chunk(
        self, content: str, file_path: str, document_id: str, symbols: list[Symbol]
    ) -> list[Chunk]:
        """Chunk one file.

        One chunk per qualifying symbol not nested in another qualifying
        symbol; runs of top-level code between them become block chunks.
        A file without qualifying symbols gets a single whole-file chunk.

        Args:
            content: File content
            file_path: Workspace-relative path
            document_id: Owning document id
            symbols: Symbols extracted from the file

        Returns:
            Chunks ordered by start line
        """
        lines = content.split("\n")
        total = len(lines)

        outer = self._outermost(symbols)
        if not outer:
            return [Chunk(
                id=file_chunk_id(document_id),
                content=content,
                file_path=file_path,
                start_line=1,
                end_line=max(total, 1),
                symbols=[s.id for s in symbols],
                chunk_type="file",
                content_hash=content_hash(content),
            )]

        chunks: dict[str, Chunk] = {}
        for symbol in outer:
            start = symbol.line_start
            end = min(max(symbol.line_end, start), total)
            cid = chunk_id(document_id, start)
            contained = [s.id for s in symbols if start <= s.line_start <= end]
            if cid in chunks:
                # Two declarations on one line share a chunk
                existing = chunks[cid]
                existing.symbols.extend(s for s in contained if s not in existing.symbols)
                continue
            text = "\n".join(lines[start - 1:end])
            chunks[cid] = Chunk(
                id=cid,
                content=text,
                file_path=file_path,
                start_line=start,
                end_line=end,
                symbols=contained,
                chunk_type="class" if symbol.kind == "class" else "function",
                content_hash=content_hash(text),
            )

        result = list(chunks.values())
        result.extend(self._block_chunks(lines, file_path, document_id, result, symbols))
        result.sort(key=lambda c: c.start_line)
        return result

    def _outermost(self, symbols: list[Symbol]) -> list[Symbol]:
        """Qualifying symbols that are not inside another qualifying symbol."""
        qualifying = sorted(
            (s for s in symbols if s.kind in QUALIFYING_KINDS),
            key=lambda s: (s.line_start, -s.line_end),
        )
        outer: list[Symbol] = []
        covered_until = 0
        for symbol in qualifying:
            if symbol.line_start <= covered_until:
                # Nested unless it starts on the same line as the enclosing one
                if outer and symbol.line_start != outer[-1].line_start:
                    continue
            outer.append(symbol)
            covered_until = max(covered_until, symbol.line_end)
        return outer

    def _block_chunks(
        self,
        lines: list[str],
        file_path: str,
        document_id: str,
        chunks: list[Chunk],
        symbols: list[Symbol],
    ) -> list[Chunk]:
        """Chunks for the gaps between symbol chunks with enough real code."""
        covered = [False] * (len(lines) + 1)
        for chunk in chunks:
            for line in range(chunk.start_line, chunk.end_line + 1):
                if line < len(covered):
                    covered[line] = True

        blocks = []
        line = 1
        while line <= len(lines):
            if covered[line]:
                line += 1
                continue
            start = line
            while line <= len(lines) and not covered[line]:
                line += 1
            end = line - 1
            region = lines[start - 1:end]
            if sum(1 for text in region if text.strip()) >= self.min_block_lines:
                # Trim blank edges so the block starts and ends on code
                while region and not region[0].strip():
                    region.pop(0)
                    start += 1
                while region and not region[-1].strip():
                    region.pop()
                    end -= 1
                text = "\n".join(region)
                blocks.append(Chunk(
                    id=block_chunk_id(document_id, start),
                    content=text,
                    file_path=file_path,
                    start_line=start,
                    end_line=end,
                    symbols=[s.id for s in symbols if start <= s.line_start <= end],
                    chunk_type="block",
                    content_hash=content_hash(text),
                ))
        return blocks
