import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from specc.lexer import Lexer
from specc.parser import Parser
from specc.semantic import TypeChecker
from specc.ast_nodes import Program
from specc.diagnostics import CompilationError, DiagnosticEngine

logger = logging.getLogger(__name__)

class CompilerPipeline:
    def __init__(self, source_path: str, visualize: bool = False, quiet: bool = False):
        self.source_path = Path(source_path)
        self.visualize = visualize
        self.source_code = ""
        self.artifacts: Dict[str, Any] = {}
        self.diagnostics = DiagnosticEngine(quiet=quiet)
        self.checked_program: Optional[Program] = None

    def run(self) -> Program:
        """
        Execute the front end: lex, parse and check. Returns the annotated program.
        """
        self._read_source()

        # 1. Lexer
        logger.debug("lexing %s", self.source_path)
        lexer = Lexer(self.source_code, self.diagnostics)
        tokens = lexer.tokenize()
        self.artifacts["tokens"] = [
            {"type": t.type.name, "lexeme": t.lexeme, "span": str(t.span)}
            for t in tokens
        ]
        if self.diagnostics.has_errors:
            raise CompilationError("Lexing failed")

        # 2. Parser
        logger.debug("parsing %d tokens", len(tokens))
        parser = Parser(tokens, self.diagnostics)
        program = parser.parse()
        if self.diagnostics.has_errors:
            raise CompilationError("Parsing failed")

        # 3. Semantic Analysis
        logger.debug("checking %d items", len(program.items))
        checker = TypeChecker(self.diagnostics)
        # Arity mismatches are reported without stopping the checker
        if not checker.check(program) or self.diagnostics.has_errors:
            raise CompilationError("Semantic analysis failed")
        self.checked_program = checker.checked_program
        self.artifacts["semantic"] = self._summarize(self.checked_program)

        if self.visualize:
            self._export_visualization_data()
        return self.checked_program

    def _read_source(self):
        if not self.source_path.exists():
            raise FileNotFoundError(f"Source file not found: {self.source_path}")
        self.source_code = self.source_path.read_text()
        self.artifacts["source"] = self.source_code

    def _summarize(self, program: Program):
        return [
            {
                "function": func.name,
                "params": [{"name": name, "type": str(typ)} for name, typ in func.signature.params],
                "returns": str(func.signature.ret),
                "block_type": str(func.body.return_type) if func.body.return_type else None,
                "mutated_vars": sorted(func.body.mutated_vars or ()),
            }
            for func in program.functions
        ]

    def _export_visualization_data(self):
        """
        Export collected artifacts to a JSON file for the dashboard.
        """
        output_path = self.source_path.with_suffix(".json")
        # Structure for the dashboard timeline
        dashboard_data = {
            "filename": self.source_path.name,
            "source": self.source_code,
            "timeline": [
                {"stage": "Lexer", "data": self.artifacts.get("tokens")},
                {"stage": "Semantic Analysis", "data": self.artifacts.get("semantic")},
            ]
        }

        with open(output_path, "w") as f:
            json.dump(dashboard_data, f, indent=2)
        logger.info("Visualization data written to %s", output_path)
