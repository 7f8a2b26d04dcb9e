import argparse

import pytest

from kymatools.gcp.pubsub import (
    ClientConfig,
    FailingTestMessage,
    MessagePayload,
    ProwMessage,
    Rotation,
    SecretRotateMessage,
    get_job_id,
)


def test_add_flags_defaults():
    config = ClientConfig()
    parser = argparse.ArgumentParser()
    config.add_flags(parser)
    parser.parse_args([])
    assert config.project_id == ""
    assert config.credentials_file_path == "/etc/pubsub/credentials.json"


def test_add_flags_binds_parsed_values():
    config = ClientConfig()
    parser = argparse.ArgumentParser()
    config.add_flags(parser)
    namespace = parser.parse_args(
        ["--pubsub-project-id", "my-project", "--pubsub-credentials-files", "/tmp/creds.json"]
    )
    assert config.project_id == "my-project"
    assert config.credentials_file_path == "/tmp/creds.json"
    assert namespace.pubsub_project_id == "my-project"


def test_get_job_id_last_path_element():
    url = "https://prow.example.com/view/gs/bucket/logs/some-job/1234567"
    assert get_job_id(url) == "1234567"


def test_get_job_id_trailing_slash():
    assert get_job_id("https://prow.example.com/view/job/42/") == "42"


def test_get_job_id_empty_path():
    assert get_job_id("https://prow.example.com") == "."


@pytest.mark.parametrize("url", ["https://prow.example.com/%zz", "https://prow.example.com/a\nb"])
def test_get_job_id_invalid_url(url):
    with pytest.raises(ValueError, match="failed parse test URL"):
        get_job_id(url)


def _prow_dict():
    return {
        "project": "proj",
        "topic": "prowjobs",
        "runid": "run-1",
        "status": "failure",
        "url": "https://prow.example.com/view/1",
        "gcs_path": "gs://bucket/logs/1",
        "refs": [{"org": "org", "repo": "repo", "base_sha": "abc"}],
        "job_type": "periodic",
        "job_name": "nightly",
    }


def test_prow_message_from_dict_fields():
    message = ProwMessage.from_dict(_prow_dict())
    assert message.run_id == "run-1"
    assert message.gcs_path == "gs://bucket/logs/1"
    assert message.refs[0]["base_sha"] == "abc"
    assert message.job_name == "nightly"


def test_prow_message_round_trip():
    data = _prow_dict()
    assert ProwMessage.from_dict(data).to_dict() == data


def test_prow_message_omits_empty_refs_keeps_null_fields():
    result = ProwMessage(project="proj").to_dict()
    assert "refs" not in result
    assert result["runid"] is None
    assert result["project"] == "proj"


def test_prow_message_rejects_wrong_type():
    with pytest.raises(ValueError):
        ProwMessage.from_dict({"project": 5})


def test_prow_message_rejects_non_mapping():
    with pytest.raises(ValueError):
        ProwMessage.from_dict(["project"])


def test_failing_test_message_round_trip():
    data = _prow_dict()
    data.update(
        {
            "firestoreDocumentId": "doc-1",
            "githubIssueNumber": 17,
            "githubIssueRepo": "repo",
            "githubIssueOrg": "org",
            "githubIssueUrl": "https://github.example.com/org/repo/issues/17",
            "slackThreadId": "thread",
            "githubCommitersLogins": ["alice"],
            "slackCommitersLogins": ["alice.slack"],
        }
    )
    message = FailingTestMessage.from_dict(data)
    assert message.github_issue_number == 17
    assert message.commiters_slack_logins == ["alice.slack"]
    assert message.to_dict() == data


def test_failing_test_message_omits_unset_optional_fields():
    message = FailingTestMessage.from_dict(_prow_dict())
    assert message.to_dict() == _prow_dict()


def test_failing_test_message_issue_number_must_be_int():
    with pytest.raises(ValueError):
        FailingTestMessage.from_dict({"githubIssueNumber": "17"})


def test_secret_rotate_message_from_yaml():
    text = """
name: projects/p/secrets/s
createTime: 2023-01-02T03:04:05Z
labels:
  owner: team
topics:
  - name: projects/p/topics/t
etag: "abc"
rotation:
  nextRotationTime: 2023-02-01T00:00:00Z
  rotationPeriod: 2592000s
"""
    message = SecretRotateMessage.from_yaml(text)
    assert message.name == "projects/p/secrets/s"
    assert message.create_time == "2023-01-02T03:04:05Z"
    assert message.labels == {"owner": "team"}
    assert message.topics == [{"name": "projects/p/topics/t"}]
    assert message.etag == "abc"
    assert message.rotation == Rotation(
        next_rotation_time="2023-02-01T00:00:00Z", rotation_period="2592000s"
    )


def test_secret_rotate_message_missing_fields_are_empty():
    message = SecretRotateMessage.from_yaml("name: only-name\n")
    assert message == SecretRotateMessage(name="only-name")


def test_secret_rotate_message_rejects_non_mapping():
    with pytest.raises(ValueError):
        SecretRotateMessage.from_yaml("- a\n- b\n")


def test_message_payload_defaults_are_independent():
    first = MessagePayload()
    second = MessagePayload()
    first.attributes["k"] = "v"
    assert second.attributes == {}