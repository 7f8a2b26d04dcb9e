import json

import pytest

from kymatools.gcp import logging as gl


@pytest.fixture
def recorded():
    entries = []

    def sink(log_name, entry):
        entries.append((log_name, entry))

    client = gl.Client(sink=sink)
    return client, entries


def _set_log_name(name):
    def apply(config):
        config.log_name = name

    return apply


def test_get_message_template_without_args():
    assert gl.get_message("hello %s", []) == "hello %s"


def test_get_message_formats_template():
    assert gl.get_message("hello %s %d", ["world", 3]) == "hello world 3"


def test_get_message_single_string_arg():
    assert gl.get_message("", ["just text"]) == "just text"


def test_get_message_joins_non_strings_with_space():
    assert gl.get_message("", [1, 2]) == "1 2"
    assert gl.get_message("", ["a", 1]) == "a1"


def test_get_labels_pairs():
    assert gl.get_labels(["k1", "v1", "k2", "v2"]) == {"k1": "v1", "k2": "v2"}
    assert gl.get_labels([]) == {}


def test_get_labels_odd_raises():
    with pytest.raises(ValueError, match="odd number"):
        gl.get_labels(["k1", "v1", "k2"])


@pytest.mark.parametrize("severity", [gl.Severity.ERROR, gl.Severity.CRITICAL, gl.Severity.EMERGENCY])
def test_get_entry_error_severities_report_errors(severity):
    entry = gl.get_entry(severity, "ctx", "trace/1", "msg", {"a": "b"})
    assert entry.payload.type == gl.ERROR_REPORTING_TYPE
    assert entry.payload.message == "msg"
    assert entry.payload.context == "ctx"
    assert entry.trace == "trace/1"
    assert entry.labels == {"a": "b"}


@pytest.mark.parametrize("severity", [gl.Severity.INFO, gl.Severity.DEBUG, gl.Severity.WARNING])
def test_get_entry_other_severities_have_no_type(severity):
    entry = gl.get_entry(severity, "", "", "msg", None)
    assert entry.payload.type == ""
    assert entry.labels is None


def test_payload_to_dict_omits_empty_fields():
    assert gl.Payload(message="m").to_dict() == {"message": "m"}
    full = gl.Payload(message="m", context="c", type="t").to_dict()
    assert full == {"message": "m", "context": "c", "@type": "t"}


def test_client_defaults_and_options():
    client = gl.Client()
    assert client.project_id == gl.PROW_LOGS_PROJECT_ID
    assert client.credentials_file_path == gl.CREDENTIALS_FILE_PATH
    other = gl.Client(gl.with_project_id("proj"), gl.with_credentials_file_path("/tmp/key"))
    assert other.project_id == "proj"
    assert other.credentials_file_path == "/tmp/key"


def test_client_option_error_is_wrapped():
    def broken(config):
        raise RuntimeError("boom")

    with pytest.raises(ValueError, match="failed applying functional option: boom"):
        gl.Client(broken)


def test_new_logger_requires_log_name(recorded):
    client, _ = recorded
    with pytest.raises(ValueError, match="logname was not provided"):
        client.new_logger(gl.with_trace("t"))


def test_new_logger_applies_options(recorded):
    client, entries = recorded
    logger = client.new_logger(
        _set_log_name("mylog"), gl.with_trace("trace/7"), gl.with_logger_context("ctx")
    )
    logger.infof("value %s", "x")
    log_name, entry = entries[0]
    assert log_name == "mylog"
    assert entry.trace == "trace/7"
    assert entry.payload.context == "ctx"
    assert entry.payload.message == "value x"
    assert entry.severity == gl.Severity.INFO


def test_with_generated_trace_option(recorded):
    client, _ = recorded
    logger = client.new_logger(_set_log_name("l"), gl.with_generated_trace())
    assert logger.trace.startswith("trace/")
    assert logger.trace[len("trace/"):].isdigit()


def test_severities_of_logger_methods(recorded):
    client, entries = recorded
    logger = client.new_logger(_set_log_name("l"))
    logger.error("e")
    logger.errorf("e %d", 1)
    logger.log_error("e")
    logger.warn("w")
    logger.info("i")
    logger.log_info("i")
    logger.debug("d")
    logger.debugf("d %s", "x")
    severities = [entry.severity for _, entry in entries]
    assert severities == [
        gl.Severity.ERROR,
        gl.Severity.ERROR,
        gl.Severity.ERROR,
        gl.Severity.WARNING,
        gl.Severity.INFO,
        gl.Severity.INFO,
        gl.Severity.DEBUG,
        gl.Severity.DEBUG,
    ]
    assert entries[0][1].payload.type == gl.ERROR_REPORTING_TYPE
    assert entries[3][1].payload.type == ""


def test_log_error_keeps_percent_signs(recorded):
    client, entries = recorded
    client.new_logger(_set_log_name("l")).log_error("100% done")
    assert entries[0][1].payload.message == "100% done"


@pytest.mark.parametrize("method", ["errorw", "infow", "debugw"])
def test_w_methods_add_labels(recorded, method):
    client, entries = recorded
    logger = client.new_logger(_set_log_name("l"))
    getattr(logger, method)("message", "k", "v")
    assert entries[0][1].labels == {"k": "v"}
    assert entries[0][1].payload.message == "message"


def test_odd_labels_log_an_error_first(recorded):
    client, entries = recorded
    logger = client.new_logger(_set_log_name("l"))
    logger.infow("message", "k", "v", "dangling")
    assert len(entries) == 2
    assert entries[0][1].severity == gl.Severity.ERROR
    assert "odd number" in entries[0][1].payload.message
    assert entries[1][1].payload.message == "message"
    assert entries[1][1].labels == {"k": "v"}


def test_logger_with_trace_returns_same_logger(recorded):
    client, _ = recorded
    logger = client.new_logger(_set_log_name("l"))
    assert logger.with_trace("abc") is logger
    assert logger.trace == "abc"
    assert logger.with_generated_trace() is logger
    assert logger.trace.startswith("trace/")


def test_with_context_returns_copy(recorded):
    client, entries = recorded
    logger = client.new_logger(_set_log_name("l"))
    child = logger.with_context("child")
    assert child is not logger
    assert child.context == "child"
    assert logger.context == ""
    child.info("x")
    assert entries[0][1].payload.context == "child"


def test_get_prowjob_labels_presubmit(monkeypatch):
    env = {
        "JOB_NAME": "job",
        "JOB_TYPE": "presubmit",
        "BUILD_ID": "b1",
        "PROW_JOB_ID": "p1",
        "REPO_NAME": "repo",
        "PULL_BASE_SHA": "base",
        "PULL_NUMBER": "12",
        "PULL_PULL_SHA": "head",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    assert gl.get_prowjob_labels() == {
        "jobName": "job",
        "jobType": "presubmit",
        "buildID": "b1",
        "prowjobID": "p1",
        "repoName": "repo",
        "commitSHA": "base",
        "prNumber": "12",
        "prSHA": "head",
    }


def test_get_prowjob_labels_periodic(monkeypatch):
    monkeypatch.setenv("JOB_TYPE", "periodic")
    monkeypatch.setenv("JOB_NAME", "job")
    monkeypatch.setenv("REPO_NAME", "repo")
    labels = gl.get_prowjob_labels()
    assert set(labels) == {"jobName", "jobType", "buildID", "prowjobID"}
    assert labels["jobType"] == "periodic"


def test_get_prowjob_labels_postsubmit(monkeypatch):
    monkeypatch.setenv("JOB_TYPE", "postsubmit")
    monkeypatch.setenv("PULL_BASE_SHA", "base")
    monkeypatch.setenv("PULL_NUMBER", "12")
    labels = gl.get_prowjob_labels()
    assert labels["commitSHA"] == "base"
    assert "prNumber" not in labels


def test_new_prowjob_logger_uses_common_labels(recorded, monkeypatch):
    monkeypatch.setenv("JOB_TYPE", "periodic")
    monkeypatch.setenv("JOB_NAME", "job")
    client, entries = recorded
    logger = client.new_prowjob_logger()
    logger.infow("m", "extra", "1")
    log_name, entry = entries[0]
    assert log_name == gl.PROWJOBS_LOG_NAME
    assert entry.labels["jobName"] == "job"
    assert entry.labels["extra"] == "1"


def test_default_sink_prints_json(capsys):
    client = gl.Client()
    logger = client.new_logger(_set_log_name("l"), gl.with_trace("trace/1"))
    logger.errorf("bad %s", "thing")
    record = json.loads(capsys.readouterr().out.strip())
    assert record["logName"] == "l"
    assert record["severity"] == "ERROR"
    assert record["trace"] == "trace/1"
    assert record["jsonPayload"] == {"message": "bad thing", "@type": gl.ERROR_REPORTING_TYPE}