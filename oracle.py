#!/usr/bin/env python3
"""
oracle.py - Divination CLI

Commands:
    divine           Cast a divination (optionally with the full trace)
    verify           Recheck a saved trace's hash chain, groups and root digest
    validate-config  Validate (and optionally repair) a weights/thresholds file

Exit codes:
    0  success
    1  actionable failure (trace did not verify, config invalid)
    2  fatal input error (missing/unreadable file, bad datetime or entropy)
"""

import json
import sys
import warnings
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

import config_schema
from bitmix import fnv1a32, hex8
from config_schema import DEFAULT_CONFIG
from engine import DivinationInput, divine, divine_with_trace
from entropy import DEFAULT_POOL_SEED
from receipts import TENANT_ID, append_receipt, emit_receipt
from scorers import normalize_question
from tracelog import playback_delays, summary_fingerprint, verify_trace

console = Console()


# =============================================================================
# Output helpers
# =============================================================================

def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red]✗[/red] {message}")


def print_next(command: str) -> None:
    """Print suggested next command."""
    console.print(f"\n[dim]Next:[/dim] [cyan]{command}[/cyan]")


def _score_bar(score: int, width: int = 20) -> str:
    filled = int(score / 100 * width)
    return "█" * filled + "░" * (width - filled)


def _fail(output: str, message: str, code: int, **extra: Any) -> None:
    if output == "json":
        click.echo(json.dumps({"error": message, **extra}, ensure_ascii=False))
    else:
        print_error(message)
    sys.exit(code)


def _parse_entropy(ctx, param, value: str) -> int:
    try:
        return int(value, 0) & 0xFFFFFFFF
    except ValueError:
        raise click.BadParameter(f"not an integer: {value!r} (use decimal or 0x-hex)")


# =============================================================================
# CLI group
# =============================================================================

@click.group()
def oracle():
    """Deterministic divination engine with an auditable trace."""
    pass


# --- divine ---

@oracle.command("divine")
@click.argument("question")
@click.option("--at", "at", help="ISO datetime, e.g. 2024-01-01T09:00:00 (default: now)")
@click.option("--nickname", "-n", default=None, help="Optional nickname for numerology")
@click.option("--entropy", "-e", default=hex(DEFAULT_POOL_SEED), callback=_parse_entropy,
              help="32-bit entropy value, decimal or 0x-hex")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Weights/thresholds JSON or YAML")
@click.option("--trace/--no-trace", default=False, help="Record and show the execution trace")
@click.option("--trace-out", type=click.Path(), help="Write the trace JSON to this file")
@click.option("--receipts", "receipts_path", type=click.Path(), help="Append a divination receipt (JSONL)")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def divine_cmd(
    question: str,
    at: Optional[str],
    nickname: Optional[str],
    entropy: int,
    config_path: Optional[str],
    trace: bool,
    trace_out: Optional[str],
    receipts_path: Optional[str],
    output: str,
) -> None:
    """Cast a divination for QUESTION."""
    if at:
        try:
            moment = datetime.fromisoformat(at)
        except ValueError:
            _fail(output, f"Unparsable datetime: {at}", 2, value=at)
    else:
        moment = datetime.now().replace(microsecond=0)

    config = DEFAULT_CONFIG
    if config_path:
        try:
            config = config_schema.load(config_path)
        except FileNotFoundError:
            _fail(output, f"Config file not found: {config_path}", 2, path=config_path)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            _fail(output, f"Unreadable config: {e}", 2, path=config_path)
        except ValueError as e:
            _fail(output, f"Invalid config: {e}", 1, path=config_path)

    inp = DivinationInput(question=question, datetime=moment, nickname=nickname)
    traced = trace or bool(trace_out)

    if traced:
        run = divine_with_trace(inp, entropy, config)
        result = run.result
        root = run.root_digest
    else:
        run = None
        result = divine(inp, entropy, config)
        root = None

    if trace_out and run is not None:
        Path(trace_out).write_text(json.dumps(run.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")

    if receipts_path:
        receipt = emit_receipt("divination", {
            "tenant_id": TENANT_ID,
            "question_hash": hex8(fnv1a32(normalize_question(question))),
            "seed": hex8(result.carry.seed),
            "score": result.score,
            "verdict": result.verdict,
            "root_digest": root,
            "config_hash": config.config_hash(),
        })
        append_receipt(receipts_path, receipt)

    if output == "json":
        payload = run.to_dict() if run is not None else {"result": result.to_dict()}
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    hexagram = result.carry.hexagram
    pillars = result.carry.pillars
    content = (
        f"verdict:   [bold]{result.verdict}[/bold]\n"
        f"score:     {result.score}/100 {_score_bar(result.score)}\n"
        f"hexagram:  {hexagram.name} ({hexagram.upper}/{hexagram.lower}, line {hexagram.changing_line})\n"
        f"pillars:   {' '.join(pillars.as_tuple())}\n"
        f"element:   {result.carry.elements.dominant()}\n"
        f"poem:      {result.poem}"
    )
    console.print(Panel(content, title=f"[bold]{normalize_question(question)}[/bold]", border_style="magenta"))

    if run is not None and trace:
        table = Table(title="Trace")
        table.add_column("id", style="dim")
        table.add_column("t", justify="right")
        table.add_column("phase")
        table.add_column("event")
        table.add_column("hash", style="dim")
        for evt in run.trace:
            indent = "  " * evt.depth
            marker = {"group_start": "▸ ", "group_end": "◂ "}.get(evt.kind, "· ")
            table.add_row(evt.id, str(evt.t), evt.phase, f"{indent}{marker}{evt.message}", evt.hash[:12])
        console.print(table)
        fp = summary_fingerprint(run.trace)
        if fp is not None:
            console.print("factor fp: " + " ".join(f"{x:.2f}" for x in fp))
        console.print(f"root digest: [cyan]{root}[/cyan]")
    if trace_out:
        print_success(f"Saved trace: {trace_out}")
        print_next(f"oracle verify {trace_out}")


# --- verify ---

def _load_trace(path: str) -> List[Dict[str, Any]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("trace")
    if not isinstance(data, list):
        raise ValueError("expected a list of events or an object with a 'trace' list")
    return data


@oracle.command("verify")
@click.argument("trace_path", type=click.Path())
@click.option("--entropy", "-e", default=hex(DEFAULT_POOL_SEED), callback=_parse_entropy,
              help="Entropy used for playback pacing")
@click.option("--receipts", "receipts_path", type=click.Path(), help="Append the verification receipt (JSONL)")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def verify_cmd(trace_path: str, entropy: int, receipts_path: Optional[str], output: str) -> None:
    """Recheck the hash chain, group digests and root digest of a saved trace."""
    if not Path(trace_path).exists():
        _fail(output, f"Trace file not found: {trace_path}", 2, path=trace_path)
    try:
        events = _load_trace(trace_path)
        receipt = verify_trace(events)
    except (ValueError, KeyError, TypeError) as e:
        _fail(output, f"Unreadable trace: {e}", 2, path=trace_path)

    if receipts_path:
        append_receipt(receipts_path, receipt)

    if output == "json":
        click.echo(json.dumps(receipt, ensure_ascii=False, indent=2))
    else:
        status = "PASSED" if receipt["ok"] else "FAILED"
        style = "green" if receipt["ok"] else "red"
        lines = [
            f"File: {trace_path}",
            f"Events: {receipt['n_events']}",
            f"Root digest: {receipt['root_digest'][:32]}…",
        ]
        if receipt["ok"]:
            total = sum(playback_delays(events, entropy))
            lines.append(f"Playback: {total / 1000:.1f}s")
        for issue in receipt["issues"]:
            lines.append(f"[red]✗[/red] {issue}")
        console.print(Panel(
            "\n".join(lines),
            title=f"[bold {style}]Trace Verification: {status}[/bold {style}]",
            border_style=style,
        ))

    if not receipt["ok"]:
        sys.exit(1)


# --- validate-config ---

@oracle.command("validate-config")
@click.argument("config_path", type=click.Path())
@click.option("--fix", is_flag=True, help="Self-heal and save over the file")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def validate_config_cmd(config_path: str, fix: bool, output: str) -> None:
    """Validate a weights/thresholds config file."""
    errors: List[str] = []
    repairs: List[str] = []
    config = None

    try:
        config = config_schema.load(config_path, strict=True)
    except FileNotFoundError:
        _fail(output, f"Config file not found: {config_path}", 2, path=config_path)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        _fail(output, f"Unreadable config: {e}", 2, path=config_path)
    except ValueError as e:
        errors.append(str(e))

    if errors and fix:
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                config = config_schema.load(config_path, strict=False)
        except ValueError as e:
            # Unrepairable (e.g. non-mapping root): leave the file untouched
            _fail(output, f"Cannot repair config: {e}", 1, path=config_path, errors=errors)
        repairs = [str(w.message) for w in caught]
        config.save(config_path)

    is_valid = not errors
    if output == "json":
        click.echo(json.dumps({
            "path": config_path,
            "valid": is_valid,
            "fixed": bool(errors and fix),
            "errors": errors,
            "repairs": repairs,
            "config": config.to_dict() if config else None,
            "config_hash": config.config_hash() if config else None,
        }, indent=2))
    else:
        status = "PASSED" if is_valid else ("FIXED" if fix else "FAILED")
        style = "green" if is_valid else ("yellow" if fix else "red")
        lines = [f"File: {config_path}"]
        if config is not None:
            w = config.weights
            t = config.verdict_thresholds
            lines.append(
                f"weights: time={w.time} text={w.text} iching={w.iching} "
                f"numerology={w.numerology} entropy={w.entropy}"
            )
            lines.append(f"thresholds: great_good={t.great_good} good={t.good} flat={t.flat}")
            lines.append(f"hash: {config.config_hash()}")
        for err in errors:
            lines.append(f"[red]✗[/red] {err}")
        for rep in repairs:
            lines.append(f"[yellow]⚠[/yellow] {rep}")
        console.print(Panel(
            "\n".join(lines),
            title=f"[bold {style}]Config Validation: {status}[/bold {style}]",
            border_style=style,
        ))
        if errors and not fix:
            print_next(f"oracle validate-config {config_path} --fix")

    if errors and not fix:
        sys.exit(1)


# =============================================================================
# Entry point
# =============================================================================

def main() -> int:
    """Entry point for the console script."""
    try:
        oracle(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return 2
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
