from typer.testing import CliRunner

from trendpress.cli import app

runner = CliRunner()


def test_sources_lists_configured_registry(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "sources:\n"
        "  - id: wire-a\n"
        "    fetch_target: https://a.example.com/rss\n"
        "    category: news\n"
        "  - id: wire-b\n"
        "    fetch_target: https://b.example.com/rss\n"
        "    enabled: false\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["sources", "--config", str(config)])

    assert result.exit_code == 0
    assert "wire-a" in result.output
    assert "wire-b" in result.output


def test_run_rejects_out_of_range_threshold():
    result = runner.invoke(app, ["run", "--threshold", "1.5"])

    assert result.exit_code == 2
