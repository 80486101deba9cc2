"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from line_optimizer.clients.llm_client import LLMClient
from line_optimizer.config import AppConfig, load_config
from line_optimizer.errors import OptimizerError, user_message
from line_optimizer.models.artifact import Artifact, ChatTurn
from line_optimizer.pipeline.orchestrator import MessageOptimizer
from line_optimizer.usage.cost_calculator import calculate_cost
from line_optimizer.utils.char_count import logical_length

app = typer.Typer(
    name="line-optimizer",
    help="長文をLINE用のメッセージに最適化します",
    no_args_is_help=True,
)
console = Console()


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _read_pasted(prompt: str) -> str:
    console.print(f"\n[bold]{prompt}[/bold] (空行2つで終了):\n")
    lines: list[str] = []
    empty_count = 0
    try:
        while True:
            line = input()
            if not line.strip():
                empty_count += 1
                if empty_count >= 2:
                    break
            else:
                empty_count = 0
            lines.append(line)
    except (EOFError, KeyboardInterrupt):
        pass
    return "\n".join(lines).strip()


def _read_source(text: str | None, file: Path | None) -> str:
    if file is not None:
        if not file.exists():
            console.print(f"[red]ファイルが見つかりません: {file}[/red]")
            raise typer.Exit(1)
        return file.read_text(encoding="utf-8")
    if text is not None:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return _read_pasted("元の文章を貼り付けてください")


def _show_artifact(artifact: Artifact, limit: int) -> None:
    color = "green" if artifact.fits(limit) else "red"
    subtitle = f"[{color}]{artifact.length}/{limit}字[/{color}]"
    if artifact.truncated:
        subtitle += " [yellow](上限超過のため末尾を切り詰め)[/yellow]"
    console.print(
        Panel(artifact.text, title=f"v{artifact.version}", subtitle=subtitle, border_style="green")
    )


def _show_history(history: list[ChatTurn]) -> None:
    if not history:
        console.print("[dim]履歴はまだありません。[/dim]")
        return
    for turn in history:
        who = "あなた" if turn.role == "user" else "AI"
        style = "red" if turn.is_error else ("cyan" if turn.role == "user" else "white")
        console.print(f"[dim]{turn.timestamp:%H:%M}[/dim] [{style}]{who}: {turn.display_text}[/{style}]")


def _report_usage(llm: LLMClient) -> None:
    summary = llm.get_token_summary()
    cost = calculate_cost(summary["calls"])
    console.print(
        f"[dim]API呼び出し: {len(summary['calls'])}回 | "
        f"入力 {summary['input']} / 出力 {summary['output']} tokens | "
        f"推定コスト ${cost:.4f}[/dim]"
    )


async def _refine_loop(optimizer: MessageOptimizer, limit: int) -> None:
    console.print(
        "\n[bold]修正指示を入力してください。[/bold] "
        "[dim]/edit 手動で書き換え, /history 履歴, /quit 終了[/dim]"
    )
    while True:
        try:
            line = console.input("[bold cyan]修正指示> [/bold cyan]")
        except (EOFError, KeyboardInterrupt):
            break
        command = line.strip()
        if not command:
            continue
        if command in ("/quit", "/q"):
            break
        if command == "/history":
            _show_history(optimizer.history)
            continue
        if command == "/edit":
            edited = _read_pasted("新しい文章を貼り付けてください")
            if edited:
                _show_artifact(optimizer.edit(edited), limit)
            continue

        try:
            with console.status("修正中..."):
                artifact = await optimizer.refine(command)
        except OptimizerError as e:
            console.print(f"[red]{user_message(e)}[/red]")
            continue
        _show_artifact(artifact, limit)


async def _run(
    optimizer: MessageOptimizer,
    source: str,
    limit: int,
    title: str | None,
    cta: str | None,
    interactive: bool,
) -> Artifact:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("メッセージを生成中...", total=None)

        def on_phase(phase: str, detail: str) -> None:
            progress.update(task, description=detail)

        artifact = await optimizer.optimize(source, limit, title, cta, on_phase=on_phase)

    _show_artifact(artifact, limit)
    if interactive:
        await _refine_loop(optimizer, limit)
    return optimizer.artifact


@app.command()
def optimize(
    file: Path = typer.Option(None, "--file", "-f", help="元の文章のファイルパス"),
    text: str = typer.Option(None, "--text", help="元の文章 (省略時は標準入力)"),
    title: str = typer.Option(None, "--title", help="冒頭にそのまま入れるタイトル"),
    cta: str = typer.Option(None, "--cta", help="末尾にそのまま入れるCTA"),
    limit: int = typer.Option(None, "--limit", "-l", help="全体の目標文字数 (改行・絵文字含む)"),
    output: Path = typer.Option(None, "--output", "-o", help="結果の保存先"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="生成後に対話で修正する"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="詳細ログと使用量を表示"),
) -> None:
    """文章をLINE用のメッセージに最適化します。"""
    if verbose:
        _setup_logging()
    config: AppConfig = load_config()
    source = _read_source(text, file)
    if limit is None:
        limit = config.limits.default_limit

    llm = LLMClient(timeout=config.llm.timeout)
    optimizer = MessageOptimizer.from_config(llm, config)
    # The priming exchange only pays off when refinements follow
    optimizer.prime_sessions = interactive

    try:
        artifact = asyncio.run(_run(optimizer, source, limit, title, cta, interactive))
    except OptimizerError as e:
        console.print(f"[red]{user_message(e, config.limits.min_limit, config.limits.max_limit)}[/red]")
        raise typer.Exit(1)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(artifact.text, encoding="utf-8")
        console.print(f"[green]保存しました: {output}[/green]")

    if verbose:
        _report_usage(llm)


@app.command()
def count(
    text: str = typer.Argument(None, help="数える文章 (省略時は標準入力)"),
    file: Path = typer.Option(None, "--file", "-f", help="数える文章のファイルパス"),
    limit: int = typer.Option(None, "--limit", "-l", help="比較する文字数上限"),
) -> None:
    """改行・絵文字を含めた文字数を数えます。上限を超えると終了コード1。"""
    source = _read_source(text, file)
    if limit is None:
        limit = load_config().limits.default_limit
    n = logical_length(source)
    color = "green" if n <= limit else "red"
    console.print(f"[{color}]{n}[/{color}] / {limit}字")
    if n > limit:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
