"""Python AST extractor for code structure."""

import ast
import re

from .errors import ParseError
from .extractor import SymbolExtractor
from .models import Symbol


_CONSTANT_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")


class PythonSymbolExtractor(SymbolExtractor):
    """Extracts functions, classes, methods and module constants from Python."""

    def can_extract(self, language: str) -> bool:
        return language == "python"

    def extract(
        self, content: str, file_path: str, document_id: str, language: str = "python"
    ) -> list[Symbol]:
        """Parse Python source and extract symbols.

        Args:
            content: Python source
            file_path: Workspace-relative path
            document_id: Id of the owning document
            language: Ignored, always Python

        Returns:
            List of symbols ordered by line

        Raises:
            ParseError: If the source has a syntax error
        """
        try:
            tree = ast.parse(content)
        except SyntaxError as e:
            raise ParseError(file_path, e.msg or "syntax error", e.lineno)
        except ValueError as e:
            # Null bytes in source
            raise ParseError(file_path, str(e))

        lines = content.split("\n")
        symbols: list[Symbol] = []
        seen: set[tuple[str, int]] = set()

        def add(symbol: Symbol) -> None:
            key = (symbol.name, symbol.line_start)
            if key not in seen:
                seen.add(key)
                symbols.append(symbol)

        def visit(body: list[ast.stmt], in_class: bool) -> None:
            for node in body:
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    add(self._parse_function(node, file_path, document_id, "method" if in_class else "function"))
                    # Nested functions are not indexed; their parent chunk covers them
                elif isinstance(node, ast.ClassDef):
                    add(self._parse_class(node, file_path, document_id))
                    visit(node.body, in_class=True)
                elif not in_class and isinstance(node, (ast.Assign, ast.AnnAssign)):
                    for symbol in self._parse_constants(node, file_path, document_id, lines):
                        add(symbol)

        visit(tree.body, in_class=False)
        symbols.sort(key=lambda s: (s.line_start, s.name))
        return symbols

    def _parse_function(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        file_path: str,
        document_id: str,
        kind: str,
    ) -> Symbol:
        """Parse a function/method node.

        Args:
            node: AST function node
            file_path: Path to the file
            document_id: Owning document id
            kind: 'function' or 'method'

        Returns:
            Symbol for the function
        """
        line_start = self._first_line(node)
        return Symbol(
            id=Symbol.make_id(document_id, node.name, line_start),
            name=node.name,
            kind=kind,
            file_path=file_path,
            line_start=line_start,
            line_end=node.end_lineno or line_start,
            visibility=_visibility(node.name),
            signature=self._build_signature(node),
            docstring=ast.get_docstring(node),
        )

    def _parse_class(self, node: ast.ClassDef, file_path: str, document_id: str) -> Symbol:
        """Parse a class node.

        Args:
            node: AST class node
            file_path: Path to the file
            document_id: Owning document id

        Returns:
            Symbol for the class
        """
        bases = [self._get_name(base) for base in node.bases if self._get_name(base)]
        signature = f"class {node.name}" + (f"({', '.join(bases)})" if bases else "")
        line_start = self._first_line(node)

        return Symbol(
            id=Symbol.make_id(document_id, node.name, line_start),
            name=node.name,
            kind="class",
            file_path=file_path,
            line_start=line_start,
            line_end=node.end_lineno or line_start,
            visibility=_visibility(node.name),
            signature=signature,
            docstring=ast.get_docstring(node),
        )

    def _parse_constants(
        self, node: ast.Assign | ast.AnnAssign, file_path: str, document_id: str, lines: list[str]
    ) -> list[Symbol]:
        """Module-level UPPER_CASE assignments become constants."""
        targets = node.targets if isinstance(node, ast.Assign) else [node.target]
        constants = []
        for target in targets:
            if isinstance(target, ast.Name) and _CONSTANT_NAME.match(target.id):
                constants.append(Symbol(
                    id=Symbol.make_id(document_id, target.id, node.lineno),
                    name=target.id,
                    kind="constant",
                    file_path=file_path,
                    line_start=node.lineno,
                    line_end=node.end_lineno or node.lineno,
                    visibility="public",
                    signature=lines[node.lineno - 1].strip(),
                ))
        return constants

    @staticmethod
    def _first_line(node: ast.AST) -> int:
        """Declaration line; decorators are part of the declaration."""
        decorators = getattr(node, "decorator_list", None)
        if decorators:
            return min(d.lineno for d in decorators)
        return node.lineno

    def _build_signature(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
        """Build function signature string.

        Args:
            node: AST function node

        Returns:
            Signature string
        """
        args = []
        for arg in node.args.args:
            arg_str = arg.arg
            if arg.annotation:
                arg_str += f": {self._get_annotation(arg.annotation)}"
            args.append(arg_str)

        returns = ""
        if node.returns:
            returns = f" -> {self._get_annotation(node.returns)}"

        prefix = "async def " if isinstance(node, ast.AsyncFunctionDef) else "def "
        return f"{prefix}{node.name}({', '.join(args)}){returns}"

    def _get_annotation(self, node: ast.expr) -> str:
        """Get string representation of type annotation."""
        if isinstance(node, ast.Name):
            return node.id
        elif isinstance(node, ast.Constant):
            return str(node.value)
        elif isinstance(node, ast.Subscript):
            value = self._get_annotation(node.value)
            slice_val = self._get_annotation(node.slice)
            return f"{value}[{slice_val}]"
        elif isinstance(node, ast.Attribute):
            return f"{self._get_annotation(node.value)}.{node.attr}"
        elif isinstance(node, ast.Tuple):
            return ", ".join(self._get_annotation(elt) for elt in node.elts)
        elif isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            return f"{self._get_annotation(node.left)} | {self._get_annotation(node.right)}"
        else:
            return "..."

    def _get_name(self, node: ast.expr) -> str | None:
        """Get name from expression node."""
        if isinstance(node, ast.Name):
            return node.id
        elif isinstance(node, ast.Attribute):
            return node.attr
        return None


def _visibility(name: str) -> str:
    if name.startswith("__") and name.endswith("__"):
        return "public"
    return "private" if name.startswith("_") else "public"
