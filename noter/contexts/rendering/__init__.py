"""
Rendering Context

Responsibilities:
- Compiles Typst notes to PDF
- Reports whether a note's PDF is up to date
- Cleans compiled output

Owns: Typst invocation, PDF output management
Never: Modifies note content
"""

from noter.contexts.rendering.compiler import (
    CompilationResult,
    CompilationStatus,
    check_status,
    clean_pdfs,
    compile_note,
    typst_available,
)

__all__ = [
    "CompilationResult",
    "CompilationStatus",
    "check_status",
    "clean_pdfs",
    "compile_note",
    "typst_available",
]
