# kymatools

Helpers for CI automation: finding container image references in
configuration files, working with Azure DevOps pipeline runs and build
checks, writing structured log entries, and handling Pub/Sub message and DNS
change data.

## Installation

```
pip install .
pip install ".[test]"   # with test dependencies
```

## `kymatools.extractimageurls`

Collect container image references from configuration files.

- `terraform.from_terraform(reader)` – returns every image reference
  (registry path with a tag) found in Terraform source read from `reader`,
  which may be opened in text or binary mode.
- `prowjob.from_prow_job_config(config)` – takes a job configuration mapping
  with `periodics`, `presubmits` and `postsubmits` keys and returns the images
  of the job containers, periodics first, then presubmits, then postsubmits.
  Jobs without a `spec` are skipped.
- `prowjob.from_repository_content(content)` – parses a YAML job file (text or
  bytes) and returns its images, periodics first, then postsubmits, then
  presubmits. Raises `ValueError` if the document is not a mapping.
- `prowjob.Repository(name, owner)` – `str()` gives `owner/name`.
- `utils.from_files(files, extract)` – opens each file in binary mode, passes
  it to `extract` and concatenates the results. An extractor failure is
  raised as `ValueError` naming the file.
- `utils.find_files_in_directory(root_path, regex)` – every path under
  `root_path` (the root included, in lexical order, links not followed) in
  which `regex` matches.
- `utils.unique_images(images)` – drops duplicates, keeping first appearance
  order.
- `utils.split_yaml_into_sections(data)` – splits YAML text at `---` lines and
  returns the documents as bytes.

```python
from kymatools.extractimageurls.terraform import from_terraform
from kymatools.extractimageurls.utils import find_files_in_directory, from_files, unique_images

files = find_files_in_directory("infra", r"\.tf$")
images = unique_images(from_files(files, from_terraform))
```

## `kymatools.azuredevops`

### `pipelines`

- `Config` (organization URL, project name, pipeline ID and version, retry
  strategy, refresh interval in seconds) and `RetryStrategy` (attempts, initial
  delay in seconds).
- `retry_call(func, attempts, delay)` – calls `func` until it succeeds; the
  wait doubles after each failure, `attempts` of 0 retries forever. When all
  attempts fail it raises `RetryError`, whose message lists each error.
- `new_run_pipeline_args(template_parameters, ado_config, *options)` – builds
  `RunPipelineArgs`; the pipeline version is set only when it is not 0.
  `pipeline_preview_run(override_yaml_path)` is an option that turns the run
  into a preview and sets the YAML override from the file.
- `get_run_result(ado_client, ado_config, pipeline_run_id)` – polls
  `ado_client.get_run(project=, pipeline_id=, run_id=)` until the `Run` state
  is `RunState.COMPLETED` and returns its `RunResult`.
- `get_run_logs(build_client, http_client, ado_config, pipeline_run_id, ado_pat)`
  – fetches the build log list via `build_client.get_build_logs(project=, build_id=)`
  and downloads the last log's URL with basic authentication through
  `http_client.open(request)` (a `urllib` opener is used when `None`).
- `get_tests_definition(file_path)` – reads `buildTests` and `timelineTests`
  from a YAML file into lists of `BuildTest` and `TimelineTest`.

```python
from kymatools.azuredevops.pipelines import Config, new_run_pipeline_args, pipeline_preview_run

config = Config(ado_project_name="example-project", ado_pipeline_id=123)
args = new_run_pipeline_args({"key": "value"}, config, pipeline_preview_run("override.yaml"))
```

### `buildchecks`

- `check_build_records(timeline, test_name, test_result, test_state)` – `True`
  if a `TimelineRecord` in the `Timeline` matches all three; `LookupError`
  otherwise.
- `get_build_stage_status(...)` – fetches the timeline with
  `build_client.get_build_timeline(project=, build_id=)` and checks it.
- `check_build_log_for_message(...)` – looks for a message in the build log
  lines; raises when it is found but expected absent, or absent but expected.
- `run_build_tests(...)` and `run_timeline_tests(...)` – run one test, print
  `Test passed for ...` on success and raise `RuntimeError` on failure.

## `kymatools.gcp`

- `cloudfunctions.new_logger()` returns a `LogEntry`; `with_label`,
  `with_trace`, `with_component` and `generate_trace_value` chain, and
  `log_debug` / `log_info` / `log_warning` / `log_error` print one JSON line
  with the matching severity. `log_critical` prints and then raises
  `RuntimeError`.
- `logging.Client(*options, sink=None)` hands entries to
  `sink(log_name, entry)`, or prints them as JSON lines to standard output.
  `Client.new_logger(*options)` needs an option that sets `log_name`;
  `Client.new_prowjob_logger()` writes to the `prowjobs` log with labels from
  `get_prowjob_labels()`. `Logger` offers `error`, `errorf`, `errorw`,
  `warn`, `info`, `infof`, `infow`, `debug`, `debugf`, `debugw`, `log_error`,
  `log_info`, plus `with_trace`, `with_generated_trace` and `with_context`
  (which returns a copy). Error severities carry the Error Reporting payload
  type.
- `pubsub` – `ProwMessage` and `FailingTestMessage` with `from_dict` /
  `to_dict`, `SecretRotateMessage.from_yaml`, `MessagePayload`, `Rotation`,
  `ClientConfig.add_flags(parser)` for `argparse`, and `get_job_id(job_url)`,
  which returns the last path element of a job URL.
- `dnsclient` – `new_record_opts(...)` fills in the default project and zone;
  `DNSClient(service).new_dns_change(record)` gives a `DNSChange` whose
  `add_record()` / `delete_record()` chain, and `do_change` submits it through
  `service.change_record(project, zone_name, change)`.

```python
from kymatools.gcp.cloudfunctions import new_logger

new_logger().with_component("example").log_info("processed %d items", 3)
```

## What the package does not do

- It makes no network calls of its own to Azure DevOps, Cloud DNS, Cloud
  Logging or Pub/Sub: clients and services are passed in by the caller, and
  the logging client only hands entries to a sink. Nothing is published to
  Pub/Sub.
- It does not read Kubernetes manifests for images, build or validate
  image-builder pipeline parameters, print pipeline variable commands, or
  write HTTP error responses.
- It has no command-line program.

## Running the tests

```
pytest
```