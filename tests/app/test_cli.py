from __future__ import annotations

import pytest

from artindex.domain.ingest_pipeline import IngestResult, QueueRunSummary
from artindex.domain.ingest_pipeline.queue import EnqueueSummary
from artindex.domain.model import ImportStatus, Provider
from artindex.ui import cli as cli_module

WALLET = "0x1111111111111111111111111111111111111111"


def _result() -> IngestResult:
    return IngestResult(
        wallet=WALLET,
        source=Provider.ALCHEMY,
        records=[],
        warnings=["Still missing 2 tokens"],
        strategies_used=["standard"],
        pages_processed=1,
        expected_count=2,
    )


def test_ingest_defaults_to_enqueue(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_ingest_and_enqueue(wallet: str, **kwargs: object) -> tuple[IngestResult, EnqueueSummary]:
        captured["wallet"] = wallet
        captured.update(kwargs)
        return _result(), EnqueueSummary(created=0, merged=0)

    monkeypatch.setattr(cli_module, "ingest_and_enqueue", fake_ingest_and_enqueue)

    cli_module.main(["ingest", WALLET])

    assert captured["wallet"] == WALLET
    assert captured["provider"] is None
    assert captured["expected_count"] is None
    assert captured["enrichment"] is False
    assert captured["filter_spam"] is False
    assert captured["sniff_mime"] is None


def test_ingest_flags_are_forwarded(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_ingest_wallet(wallet: str, **kwargs: object) -> IngestResult:
        captured["wallet"] = wallet
        captured.update(kwargs)
        return _result()

    def unexpected(*_: object, **__: object) -> None:
        pytest.fail("ingest_and_enqueue should not run with --no-enqueue")

    monkeypatch.setattr(cli_module, "ingest_wallet", fake_ingest_wallet)
    monkeypatch.setattr(cli_module, "ingest_and_enqueue", unexpected)

    cli_module.main(
        [
            "ingest",
            WALLET,
            "--provider",
            "opensea",
            "--expected-count",
            "12",
            "--filter-spam",
            "--enrich",
            "--no-sniff",
            "--no-enqueue",
        ]
    )

    assert captured["provider"] == "opensea"
    assert captured["expected_count"] == 12
    assert captured["enrichment"] is True
    assert captured["filter_spam"] is True
    assert captured["sniff_mime"] is False


def test_process_queue_passes_status_and_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_process_queue(**kwargs: object) -> QueueRunSummary:
        captured.update(kwargs)
        return QueueRunSummary(results=[])

    monkeypatch.setattr(cli_module, "process_queue", fake_process_queue)

    cli_module.main(["process-queue", "--status", "failed", "--limit", "5"])

    assert captured == {"status": ImportStatus.FAILED, "limit": 5}


def test_stats_logs_counts(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def fake_stats() -> dict[ImportStatus, int]:
        return {ImportStatus.PENDING: 3, ImportStatus.IMPORTED: 1, ImportStatus.FAILED: 0}

    monkeypatch.setattr(cli_module, "queue_stats", fake_stats)

    with caplog.at_level("INFO", logger=cli_module.__name__):
        cli_module.main(["stats"])

    assert "pending: 3" in caplog.text
    assert "imported: 1" in caplog.text


@pytest.mark.parametrize(
    "argv",
    [
        ["process-queue", "--limit", "0"],
        ["ingest", WALLET, "--expected-count", "-1"],
    ],
)
def test_invalid_arguments_exit_with_usage_code(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        cli_module.main(argv)

    assert exc.value.code == 2


def test_unexpected_failure_exits_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(**_: object) -> QueueRunSummary:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(cli_module, "process_queue", broken)

    with pytest.raises(SystemExit) as exc:
        cli_module.main(["process-queue"])

    assert exc.value.code == 1
