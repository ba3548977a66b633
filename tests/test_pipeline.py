import logging

import pytest

from dashcuro.remediation.pipeline import RemediationPipeline, remove_exemplars_from_dashboards
from dashcuro.rules.exemplar import ExemplarRule

from conftest import dashboard_model, panel


class BrokenRewriteRule(ExemplarRule):
    def rewrite_text(self, serialized):
        return serialized[:-1], 1


def test_single_dashboard_is_remediated_and_saved(grafana):
    """
    SCENARIO: fetch and save succeed -> no failures, saved model has
    exemplar:false and no exemplar:true.
    """
    grafana.add(dashboard_model("a", panel(True), panel(True)))

    failed = remove_exemplars_from_dashboards(grafana.client(), ["a"])

    assert failed == []
    saved = grafana.saves[0]
    assert saved["overwrite"] is True
    text = ExemplarRule.serialize(saved["dashboard"])
    assert '"exemplar":false' in text
    assert '"exemplar":true' not in text


def test_fetch_failure_does_not_stop_the_loop(grafana):
    """
    SCENARIO: fetching a fails, b succeeds -> ["a"], and b is still saved.
    """
    grafana.add(dashboard_model("b", panel(True)))

    context = RemediationPipeline(grafana.client()).run(["a", "b"])

    assert context.failed == ["a"]
    assert [s["dashboard"]["uid"] for s in grafana.saves] == ["b"]
    assert context.reports[0]["status"] == "FETCH_FAILED"
    assert context.reports[1]["status"] == "REMEDIATED"
    assert context.reports[1]["version"] == 2


def test_save_conflict_is_recorded_as_failure(grafana):
    grafana.add(dashboard_model("a", panel(True)))
    grafana.add(dashboard_model("b", panel(True)))
    grafana.fail_save.add("a")

    context = RemediationPipeline(grafana.client()).run(["a", "b"])

    assert context.failed == ["a"]
    assert context.reports[0]["status"] == "SAVE_FAILED"
    assert "version-mismatch" in context.reports[0]["error"]
    assert grafana.dashboards["a"]["panels"][0]["targets"][0]["exemplar"] is True


def test_serialize_failure_is_recorded(grafana):
    grafana.add(dashboard_model("nan"))
    grafana.raw_bodies["nan"] = b'{"dashboard": {"uid": "nan", "threshold": NaN, "exemplar": true}, "meta": {}}'

    context = RemediationPipeline(grafana.client()).run(["nan"])

    assert context.failed == ["nan"]
    assert context.reports[0]["status"] == "SERIALIZE_FAILED"
    assert grafana.saves == []


def test_parse_failure_is_recorded(grafana):
    grafana.add(dashboard_model("a", panel(True)))
    grafana.add(dashboard_model("b", panel(True)))

    context = RemediationPipeline(grafana.client(), BrokenRewriteRule()).run(["a", "b"])

    assert context.failed == ["a", "b"]
    assert {r["status"] for r in context.reports} == {"PARSE_FAILED"}
    assert grafana.saves == []


@pytest.mark.parametrize("strategy", ["text", "tree"])
def test_second_pass_changes_nothing(grafana, strategy):
    """
    IDEMPOTENCY TEST: re-running on a remediated dashboard finds nothing
    to flip and does not save again.
    """
    grafana.add(dashboard_model("a", panel(True)))
    pipeline = RemediationPipeline(grafana.client(), ExemplarRule(strategy=strategy))

    first = pipeline.run(["a"])
    second = pipeline.run(["a"])

    assert first.reports[0]["changes"] == 1
    assert second.reports[0]["status"] == "UNCHANGED"
    assert second.reports[0]["changes"] == 0
    assert second.failed == []
    assert len(grafana.saves) == 1


def test_dry_run_never_saves(grafana):
    grafana.add(dashboard_model("a", panel(True)))

    context = RemediationPipeline(grafana.client()).run(["a"], dry_run=True, capture_content=True)

    assert grafana.saves == []
    report = context.reports[0]
    assert report["status"] == "PREVIEW"
    assert '"exemplar":true' in report["before"]
    assert '"exemplar":false' in report["after"]


def test_outcomes_are_exclusive_and_exhaustive(grafana):
    for uid in "abcde":
        grafana.add(dashboard_model(uid, panel(True)))
    grafana.fail_fetch.add("b")
    grafana.fail_save.add("d")
    uids = ["a", "b", "c", "d", "e", "missing"]

    context = RemediationPipeline(grafana.client()).run(uids)

    assert context.failed == ["b", "d", "missing"]
    assert context.succeeded == ["a", "c", "e"]
    assert set(context.failed).isdisjoint(context.succeeded)
    assert [r["uid"] for r in context.reports] == uids


def test_unexpected_errors_escape_the_loop():
    class ExplodingClient:
        def get_dashboard_by_uid(self, uid):
            raise KeyError(uid)

    with pytest.raises(KeyError):
        RemediationPipeline(ExplodingClient()).run(["a"])


def test_unencodable_dashboard_does_not_stop_the_loop(grafana):
    """
    SCENARIO: a's title holds a lone surrogate (a truncated emoji). It can
    never be sent back to Grafana, so a fails and b is still saved.
    """
    grafana.add(dashboard_model("a", panel(True)))
    grafana.add(dashboard_model("b", panel(True)))
    grafana.raw_bodies["a"] = (
        b'{"dashboard": {"uid": "a", "title": "cpu \\ud83d",'
        b' "panels": [{"targets": [{"exemplar": true}]}]}, "meta": {}}'
    )

    context = RemediationPipeline(grafana.client()).run(["a", "b"])

    assert context.failed == ["a"]
    assert context.reports[0]["status"] == "SERIALIZE_FAILED"
    assert [s["dashboard"]["uid"] for s in grafana.saves] == ["b"]


def test_progress_is_logged_every_fifth_dashboard(grafana, caplog):
    uids = [f"d{i:02d}" for i in range(12)]
    for uid in uids:
        grafana.add(dashboard_model(uid, panel(True)))
    seen = []

    with caplog.at_level(logging.INFO, logger="dashcuro.pipeline"):
        RemediationPipeline(grafana.client()).run(
            uids, progress_callback=lambda done, total: seen.append((done, total))
        )

    progress = [r.message for r in caplog.records if r.message.startswith("Processed")]
    assert progress == ["Processed 0 / 12 dashboards", "Processed 5 / 12 dashboards",
                        "Processed 10 / 12 dashboards"]
    assert seen[-1] == (12, 12)
