"""Prompt construction for the LINE message editor.

All prompts share one ordered rule set. The rules are listed by priority:
fixed fragments first, then the character limit, which overrides every
stylistic rule after it.
"""

from __future__ import annotations

from line_optimizer.models.request import TransformRequest

TRANSFORM_INTRO = (
    "あなたはプロのLINEメッセージ編集者です。"
    "以下の情報を元に、指定された「条件」に従って、LINEで共有するのに最適な文章に編集してください。"
)

REFINE_INTRO = (
    "あなたはプロのLINEメッセージ編集者です。"
    "ユーザーと対話しながら、既に作成したLINEメッセージを修正指示に従って改善します。"
)


def _fragment_rule(title: str | None, cta: str | None) -> str:
    lines = ["1.  **固定テキストの配置**:"]
    if title:
        lines.append(f"    *   タイトル「{title}」を**一字一句変更せずに**メッセージの冒頭に配置してください。")
    if cta:
        lines.append(f"    *   CTA「{cta}」を**一字一句変更せずに**メッセージの末尾に配置してください。")
    if not title and not cta:
        lines.append("    *   タイトルやCTAの指定はありません。本文のみで一つのメッセージとして成立させてください。")
    else:
        lines.append("    *   タイトルとCTAの内容は書き換え・要約・装飾の追加を一切しないでください。")
    return "\n".join(lines)


def policy_rules(
    max_length: int,
    max_symbols: int,
    title: str | None = None,
    cta: str | None = None,
) -> str:
    """The six content rules, in priority order."""
    return f"""\
{_fragment_rule(title, cta)}
2.  **最重要: 文字数厳守**: メッセージ全体（タイトル、本文、CTA、全ての改行、全ての絵文字を含む全て）は、**絶対に** {max_length} 文字以内に収めてください。絵文字は1つにつき1文字と数えます。**1文字でも超過することは許容されません。** この条件は他のどの条件よりも優先されます。
3.  **雰囲気と情報の維持**: 元の文章の雰囲気やトーンを忠実に再現してください。元の文章にない内容を付け加えず、重要な情報を省略しないでください。削ってよいのは冗長な表現だけです。
4.  **顔文字・装飾記号の削除**: 顔文字（例: (^_^) (T_T) m(_ _)m）や、LINEのメッセージとして不適切または過度に装飾的な特殊記号（例: ★☆◆■♪【】）は全て削除してください。
5.  **記号の使用制限**: 句読点（、。）や一般的な記号（！？・など）は、メッセージ全体で**合計{max_symbols}個以内**にしてください。
6.  **絵文字の節度ある活用**: 内容や感情が伝わりやすくなる場面に限って絵文字を使ってください。多用は避け、文章全体の品位を保ってください。"""


READABILITY_RULE = """\
7.  **LINEでの可読性**: トーク画面で自然に読めるよう改行を工夫してください。短い改行を多用せず、関連する内容は一つの段落にまとめてください。"""

OUTPUT_RULE = """\
# 出力:
編集後の文章のみを、他の余計なテキストや説明なしに返してください。markdownのコードブロックなども含めないでください。純粋なテキストのみを返してください。"""


def build_transform_prompt(request: TransformRequest, max_symbols: int = 5) -> str:
    """Build the single-turn prompt for the initial transformation."""
    segments = [TRANSFORM_INTRO]
    if request.title:
        segments += ["\n# タイトル:", request.title]
    segments += ["\n# 元の文章:", request.source_text.strip()]
    if request.cta:
        segments += ["\n# CTA (Call to Action):", request.cta]
    segments += [
        "\n# 条件:",
        policy_rules(request.max_length, max_symbols, request.title, request.cta),
        READABILITY_RULE,
        "",
        OUTPUT_RULE,
    ]
    return "\n".join(segments)


def build_refine_instruction(
    max_length: int,
    max_symbols: int = 5,
    title: str | None = None,
    cta: str | None = None,
) -> str:
    """System instruction for a refinement conversation.

    The limit is fixed for the lifetime of the conversation.
    """
    return f"""\
{REFINE_INTRO}

# 修正時に常に守る条件:
{policy_rules(max_length, max_symbols, title, cta)}
{READABILITY_RULE}

# 応答の形式:
修正指示を受けたら、指示を反映した**メッセージ全体**を毎回最初から最後まで返してください。差分や変更点の説明、前置き、コードブロックは含めないでください。
指示が {max_length} 文字の上限と両立しない場合は、上限を優先したうえで指示に最も近い形にしてください。"""


def build_priming_prompt(current_text: str) -> str:
    """First turn of a session: hand the generated message to the model."""
    return f"""\
これから修正していくLINEメッセージは以下の通りです。

# 現在のメッセージ:
{current_text}

内容を確認したら「了解しました」とだけ返答してください。"""


def build_refine_prompt(current_text: str, instruction: str, max_length: int) -> str:
    """A refinement turn. The current text is always restated in full."""
    return f"""\
# 現在のメッセージ:
{current_text}

# 修正指示:
{instruction.strip()}

上記の修正指示を反映したメッセージ全体を、{max_length}文字以内で返してください。修正後のメッセージ本文のみを出力してください。"""
