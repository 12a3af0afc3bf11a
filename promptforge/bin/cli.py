#!/usr/bin/env python
"""
cli.py - Analyze, classify and rewrite prompts from the terminal.

Commands
────────
1. Score a prompt             $ prompt-forge analyze "로그인 기능 만들어줘"
2. Intent / category          $ prompt-forge classify "fix the crash in auth.py"
3. Rewrite candidates         $ prompt-forge rewrite "make it faster" --context ctx.yaml
4. Batch summary              $ prompt-forge batch prompts.jsonl
5. Configured providers       $ prompt-forge providers --check

Prompt text may also come from --file PATH or from stdin ("-").
Add --json to any command for machine-readable output.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import pathlib
import sys
from typing import Any, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from promptforge import __version__
from promptforge.core.classifier import category_label, classification_stats, classify, intent_label
from promptforge.core.golden import evaluate, summarize
from promptforge.core.models import Classification, GuidelineEvaluation, RewriteResult, SessionContext
from promptforge.core.rewriting.orchestrator import rewrite
from promptforge.utils.config import PROVIDER_METADATA, Settings, load_settings
from promptforge.utils.io_helpers import load_mapping, read_prompts, read_utf8
from promptforge.utils.llm_client import get_provider_client
from promptforge.utils.logging_helper import get_logger, set_level

# ── logging setup ────────────────────────────────────────────────────────────
log = get_logger()
console = Console()


# ── utilities ────────────────────────────────────────────────────────────────
def die(msg: str) -> None:
    """Log error and exit with failure status."""
    log.error(msg)
    print(f"❌ {msg}", file=sys.stderr)
    sys.exit(1)


def emit_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def resolve_text(args: argparse.Namespace) -> str:
    """Prompt text from --file, stdin ("-") or the positional argument."""
    if getattr(args, "file", None):
        path = pathlib.Path(args.file)
        if not path.exists():
            die(f"Prompt file not found: {path}")
        return read_utf8(path)
    if args.text == "-" or (args.text is None and not sys.stdin.isatty()):
        return sys.stdin.read()
    if args.text is None:
        die("No prompt given (pass TEXT, --file PATH or pipe it on stdin)")
    return args.text


def load_context(path: Optional[str]) -> Optional[SessionContext]:
    if not path:
        return None
    p = pathlib.Path(path)
    if not p.exists():
        die(f"Context file not found: {p}")
    try:
        return SessionContext.from_dict(load_mapping(p))
    except ValueError as e:
        die(f"Invalid context file {p}: {e}")


def score_style(score: float) -> str:
    if score >= 0.7:
        return "green"
    if score >= 0.5:
        return "yellow"
    return "red"


# ── renderers ────────────────────────────────────────────────────────────────
def show_evaluation(evaluation: GuidelineEvaluation) -> None:
    style = score_style(evaluation.overall_score)
    console.print(Panel.fit(
        f"[bold]Overall:[/] [{style}]{evaluation.overall_score:.0%}[/]   "
        f"[bold]Grade:[/] [{style}]{evaluation.grade.value}[/]   "
        f"[bold]GOLDEN:[/] {evaluation.golden_score.total:.0%}",
        title="Prompt Evaluation",
        border_style="blue",
    ))

    table = Table(title="Guidelines", box=box.ROUNDED)
    table.add_column("Guideline", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Evidence / Suggestion")
    for g in evaluation.guideline_scores:
        note = ", ".join(g.evidence) if g.evidence else f"[dim]{g.suggestion}[/]"
        table.add_row(g.name, f"[{score_style(g.score)}]{g.score:.0%}[/]", f"{g.weight:.2f}", note)
    console.print(table)

    golden = Table(title="GOLDEN", box=box.SIMPLE)
    for name in evaluation.golden_score.dimensions():
        golden.add_column(name.capitalize(), justify="right")
    golden.add_row(*(f"{v:.0%}" for v in evaluation.golden_score.dimensions().values()))
    console.print(golden)

    if evaluation.anti_patterns:
        console.print("[bold red]Anti-patterns[/]")
        for ap in evaluation.anti_patterns:
            console.print(f"  • [{ap.severity.value}] {ap.name}: {ap.description}")
            if ap.evidence_snippet:
                console.print(f"    [dim]\"{ap.evidence_snippet}\"[/]")
    if evaluation.recommendations:
        console.print("[bold yellow]Recommendations[/]")
        for i, rec in enumerate(evaluation.recommendations, 1):
            console.print(f"  {i}. {rec}")


def show_classification(result: Classification) -> None:
    f = result.features
    console.print(Panel.fit(
        f"[yellow]Intent:[/] {intent_label(result.intent)} ({result.intent_confidence:.0%})\n"
        f"[yellow]Category:[/] {category_label(result.task_category)} ({result.category_confidence:.0%})\n"
        f"[yellow]Language:[/] {f.language_hint.value}   "
        f"[yellow]Complexity:[/] {f.complexity.value}   "
        f"[yellow]Words:[/] {f.word_count}\n"
        f"[yellow]Keywords:[/] {', '.join(result.matched_keywords) or '-'}",
        title="Classification",
        border_style="blue",
    ))
    if result.multi_label.secondary:
        extra = ", ".join(f"{category_label(s.category)} {s.confidence:.0%}"
                          for s in result.multi_label.secondary)
        console.print(f"[dim]Secondary categories: {extra}[/]")


def show_candidates(results: List[RewriteResult]) -> None:
    for i, r in enumerate(results, 1):
        if r.needs_setup:
            console.print(Panel(
                "\n".join(r.key_changes),
                title=f"{i}. {r.label} (setup needed)",
                border_style="yellow",
            ))
            continue
        if not r.text:
            reason = f"\n[dim]{r.fallback_reason}[/]" if r.fallback_reason else ""
            console.print(Panel(
                "\n".join(r.key_changes) + reason,
                title=f"{i}. {r.label} (failed)",
                border_style="red",
            ))
            continue

        title = f"{i}. {r.label} · confidence {r.confidence:.0%}"
        if r.provider:
            title += f" · {r.provider.value}"
        if r.was_fallback:
            title += " · fallback"
        body = r.text
        if r.key_changes:
            body += "\n\n[bold]Key changes[/]\n" + "\n".join(f"• {c}" for c in r.key_changes)
        console.print(Panel(body, title=title, border_style="green" if r.is_ai_generated else "cyan"))


# ── commands ─────────────────────────────────────────────────────────────────
def cmd_analyze(args: argparse.Namespace, settings: Settings) -> None:
    evaluation = evaluate(resolve_text(args), settings.analysis)
    if args.json:
        emit_json(evaluation.to_dict())
    else:
        show_evaluation(evaluation)


def cmd_classify(args: argparse.Namespace, settings: Settings) -> None:
    result = classify(resolve_text(args), load_context(args.context), settings.analysis)
    if args.json:
        emit_json(result.to_dict())
    else:
        show_classification(result)


def cmd_rewrite(args: argparse.Namespace, settings: Settings) -> None:
    text = resolve_text(args)
    context = load_context(args.context)
    providers = [] if args.no_ai else settings.providers.get_providers()

    evaluation = evaluate(text, settings.analysis)
    if args.json:
        results = asyncio.run(rewrite(
            text, evaluation, context, providers,
            analysis_config=settings.analysis, config=settings.rewriter,
        ))
        emit_json({
            "evaluation": evaluation.to_dict(),
            "candidates": [r.to_dict() for r in results],
        })
        return

    with console.status("[bold cyan]Generating rewrite candidates..."):
        results = asyncio.run(rewrite(
            text, evaluation, context, providers,
            analysis_config=settings.analysis, config=settings.rewriter,
        ))
    console.print(f"[bold]Original score:[/] {evaluation.overall_score:.0%} ({evaluation.grade.value})")
    show_candidates(results)


def cmd_batch(args: argparse.Namespace, settings: Settings) -> None:
    path = pathlib.Path(args.path)
    if not path.exists():
        die(f"Batch file not found: {path}")
    try:
        prompts = read_prompts(path)
    except ValueError as e:
        die(str(e))
    if not prompts:
        die(f"No prompts found in {path}")

    evaluations, classifications = [], []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
        disable=args.json,
    ) as progress:
        task = progress.add_task("Scoring prompts", total=len(prompts))
        for text in prompts:
            evaluations.append(evaluate(text, settings.analysis))
            classifications.append(classify(text, config=settings.analysis))
            progress.advance(task)

    summary = summarize(evaluations)
    stats = classification_stats(classifications)
    if args.json:
        emit_json({
            "summary": summary.to_dict(),
            "classification": stats,
            "prompts": [
                {"prompt": p, "overall_score": e.overall_score, "grade": e.grade.value,
                 "intent": c.intent.value, "task_category": c.task_category.value}
                for p, e, c in zip(prompts, evaluations, classifications)
            ],
        })
        return

    table = Table(title=f"Batch Summary ({summary.count} prompts)", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Prompt")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="center")
    table.add_column("Intent")
    table.add_column("Category")
    for i, (p, e, c) in enumerate(zip(prompts, evaluations, classifications), 1):
        table.add_row(
            str(i),
            p if len(p) <= 48 else p[:47] + "…",
            f"[{score_style(e.overall_score)}]{e.overall_score:.0%}[/]",
            e.grade.value,
            intent_label(c.intent),
            category_label(c.task_category),
        )
    console.print(table)

    grades = "  ".join(f"{g}: {n}" for g, n in summary.grade_distribution.items())
    anti = ", ".join(f"{a['id']} ×{a['count']}" for a in summary.top_anti_patterns) or "-"
    console.print(Panel.fit(
        f"[yellow]Average score:[/] {summary.average_score:.0%}\n"
        f"[yellow]Grades:[/] {grades}\n"
        f"[yellow]Weakest guidelines:[/] {', '.join(summary.weakest_guidelines)}\n"
        f"[yellow]Top anti-patterns:[/] {anti}\n"
        f"[yellow]Avg intent confidence:[/] {stats['avg_intent_confidence']:.0%}",
        title="Summary",
        border_style="blue",
    ))


async def _check_keys(configs) -> List[bool]:
    clients = [get_provider_client(c) for c in configs]
    try:
        return list(await asyncio.gather(*(c.validate_key() for c in clients)))
    finally:
        await asyncio.gather(*(c.aclose() for c in clients))


def cmd_providers(args: argparse.Namespace, settings: Settings) -> None:
    configs = settings.providers.get_providers()
    checks: List[Optional[bool]] = [None] * len(configs)
    if args.check and configs:
        usable = [i for i, c in enumerate(configs) if c.is_usable]
        results = asyncio.run(_check_keys([configs[i] for i in usable]))
        for i, ok in zip(usable, results):
            checks[i] = ok

    if args.json:
        emit_json([dict(c.to_dict(), key_valid=ok) for c, ok in zip(configs, checks)])
        return

    if not configs:
        console.print("[yellow]No providers configured.[/] Set one of: " + ", ".join(
            v for meta in PROVIDER_METADATA.values() for v in meta.env_vars))
        return

    table = Table(title="AI Providers", box=box.ROUNDED)
    table.add_column("Priority", justify="right")
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Enabled", justify="center")
    table.add_column("Primary", justify="center")
    if args.check:
        table.add_column("Key", justify="center")
    for c, ok in zip(configs, checks):
        row = [
            str(c.priority),
            c.display_name or c.provider.value,
            c.model or PROVIDER_METADATA[c.provider].default_model,
            "✓" if c.is_usable else "✗",
            "★" if c.is_primary else "",
        ]
        if args.check:
            row.append("-" if ok is None else ("[green]valid[/]" if ok else "[red]rejected[/]"))
        table.add_row(*row)
    console.print(table)


# ── argument parsing ─────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="prompt-forge",
                                 description="Score, classify and rewrite prompts for coding assistants")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--config", help="YAML/JSON file with providers and rewriter settings")
    ap.add_argument("--env-file", help="Path to a .env file (default: search upwards)")
    ap.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    def add_text_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("text", nargs="?", help='Prompt text ("-" reads stdin)')
        p.add_argument("--file", help="Read the prompt from a file")

    p = sub.add_parser("analyze", help="Guideline evaluation, GOLDEN score and anti-patterns")
    add_text_args(p)
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("classify", help="Intent, task category and features")
    add_text_args(p)
    p.add_argument("--context", help="Session context file (JSON or YAML)")
    p.set_defaults(func=cmd_classify)

    p = sub.add_parser("rewrite", help="Template and AI rewrite candidates")
    add_text_args(p)
    p.add_argument("--context", help="Session context file (JSON or YAML)")
    p.add_argument("--no-ai", action="store_true", help="Template candidate only")
    p.set_defaults(func=cmd_rewrite)

    p = sub.add_parser("batch", help="Score every prompt in a file and summarize")
    p.add_argument("path", help=".jsonl, .json, .yaml or blank-line separated text")
    p.set_defaults(func=cmd_batch)

    p = sub.add_parser("providers", help="List configured AI providers")
    p.add_argument("--check", action="store_true", help="Send a minimal request to validate each key")
    p.set_defaults(func=cmd_providers)

    return ap


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if args.json:
        set_level(logging.WARNING)
    elif args.verbose:
        set_level(logging.DEBUG)

    config_path = pathlib.Path(args.config) if args.config else None
    if config_path and not config_path.exists():
        die(f"Config file not found: {config_path}")
    try:
        settings = load_settings(config_path, pathlib.Path(args.env_file) if args.env_file else None)
    except (ValueError, KeyError) as e:
        die(f"Invalid configuration: {e}")

    args.func(args, settings)


if __name__ == "__main__":
    main()
