import datetime

from gatecord.ui import embeds


def test_code_block_stays_within_limit():
    block = embeds.code_block("x" * 500, 100)

    assert block.startswith("```\n")
    assert block.endswith("\n```")
    assert len(block) == 100


def test_short_text_is_not_padded():
    assert embeds.code_block("boom", 100) == "```\nboom\n```"


def test_premium_required_embed():
    embed = embeds.premium_required_embed("Guild Premium", "https://example.invalid")

    assert embed.title == "❌ Guild Premium Required"
    assert "This command requires Guild Premium!" in embed.description
    assert "[Support Server](https://example.invalid)" in embed.description
    assert embed.color == embeds.ERROR_COLOR


def test_premium_required_embed_without_support_link():
    assert "Support Server" not in embeds.premium_required_embed("Premium").description


def test_fault_report_embed_respects_limit():
    embed = embeds.fault_report_embed(
        command_name="premium grant",
        invoker="someone (`20`)",
        location="Test Guild (`300`)",
        traceback_text="Traceback\n" * 1000,
        limit=2000,
    )

    assert embed.title == "❌ Logged Error"
    assert embed.description.startswith("**Command**: `premium grant`\n")
    assert len(embed.description) <= 2000
    assert isinstance(embed.timestamp, datetime.datetime)


def test_trace_embed():
    embed = embeds.trace_embed("RuntimeError: kaboom", limit=4000)

    assert embed.title == "🔍 Command Trace"
    assert "RuntimeError: kaboom" in embed.description
