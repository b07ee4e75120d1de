"""Zen CLI - Command-line interface for the Zen compiler.

Commands:
  zen run [file.edn]                 - Parse and print the AST (JSON)
  zen compile [file.edn] [-o out]    - Compile to a WebAssembly module
  zen ir [file.edn]                  - Emit LLVM IR for the lowered functions
  zen check [file.edn]               - Parse, lower and stack-type-check

The source file defaults to main.edn (or `source` in .zenrc.yml).
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from zen import __version__
from zen.compiler.ast_nodes import Module
from zen.compiler.codegen import lower
from zen.compiler.parser import parse
from zen.compiler.verify import verify_module
from zen.config import ZenConfig, load_config
from zen.errors import CompileError

logger = logging.getLogger(__name__)


def _read_source(args: argparse.Namespace) -> Optional[tuple[str, str]]:
    """Return (path, source), or print a JSON error and return None."""
    source_path = args.file or args.config.source
    if not os.path.exists(source_path):
        print(json.dumps({"error": f"File not found: {source_path}"}))
        return None
    try:
        with open(source_path, "r", encoding="utf-8") as f:
            return source_path, f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(json.dumps({"error": f"Cannot read {source_path}: {e}"}))
        return None


def _parse(args: argparse.Namespace) -> Optional[Module]:
    loaded = _read_source(args)
    if loaded is None:
        return None
    source_path, source = loaded
    try:
        return parse(source, filename=source_path)
    except CompileError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2))
        return None


def cmd_run(args: argparse.Namespace) -> int:
    """Parse a source file and print its AST."""
    module = _parse(args)
    if module is None:
        return 1
    print(module.to_json(indent=2 if args.pretty else None))
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile a source file to a WebAssembly module."""
    module = _parse(args)
    if module is None:
        return 1

    try:
        wasm_module = lower(module)
    except CompileError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2))
        return 1

    if args.config.verify:
        result = verify_module(wasm_module)
        for issue in result.issues:
            logger.warning("%s in '%s': %s", issue.kind, issue.function, issue.message)

    output = args.output or args.config.output
    data = wasm_module.finish()
    with open(output, "wb") as f:
        f.write(data)
    logger.debug("wrote %d byte(s) to %s", len(data), output)

    print(json.dumps({
        "status": "compiled",
        "output": output,
        "bytes": len(data),
        "exports": [f.name for f in wasm_module.compiled],
    }))
    return 0


def cmd_ir(args: argparse.Namespace) -> int:
    """Emit LLVM IR for a source file."""
    from zen.compiler.llvm_emit import emit_llvm

    module = _parse(args)
    if module is None:
        return 1
    try:
        wasm_module = lower(module)
    except CompileError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2))
        return 1
    try:
        llvm_text = emit_llvm(wasm_module, name=module.filename or "zen")
    except ValueError as e:
        # Operands the stack never received, e.g. an unbound parameter
        print(json.dumps({"error": str(e)}))
        return 1
    print(llvm_text)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Parse, lower and type-check without writing anything."""
    module = _parse(args)
    if module is None:
        return 1
    try:
        wasm_module = lower(module)
    except CompileError as e:
        print(json.dumps({"error": e.to_dict()}, indent=2))
        return 1
    result = verify_module(wasm_module)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.verified else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zen",
        description="Zen - s-expression language compiling to WebAssembly",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", dest="config_path", default=None,
                        help="Config file (default: nearest .zenrc.yml)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run
    p_run = subparsers.add_parser("run", help="Parse a source file and print the AST")
    p_run.add_argument("file", nargs="?", default=None, help="Source file (default: main.edn)")
    p_run.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    p_run.set_defaults(func=cmd_run)

    # compile
    p_compile = subparsers.add_parser("compile", help="Compile a source file to WebAssembly")
    p_compile.add_argument("file", nargs="?", default=None, help="Source file (default: main.edn)")
    p_compile.add_argument("-o", "--output", help="Output path (default: program.wasm)")
    p_compile.set_defaults(func=cmd_compile)

    # ir
    p_ir = subparsers.add_parser("ir", help="Emit LLVM IR")
    p_ir.add_argument("file", nargs="?", default=None, help="Source file (default: main.edn)")
    p_ir.set_defaults(func=cmd_ir)

    # check
    p_check = subparsers.add_parser("check", help="Stack-type-check the generated code")
    p_check.add_argument("file", nargs="?", default=None, help="Source file (default: main.edn)")
    p_check.set_defaults(func=cmd_check)

    return parser


def _configure_logging(config: ZenConfig, verbose: bool) -> None:
    level = logging.getLevelName(config.log_level)
    if verbose:
        level = logging.DEBUG
    elif not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.config = load_config(args.config_path)
    _configure_logging(args.config, args.verbose)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
