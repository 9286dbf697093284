"""Tests for reflow.manifest.builder — preparing run directories."""

import json
import uuid

import pytest
import yaml

from reflow.core.errors import FormatError, ManifestError
from reflow.core.home import RunLayout
from reflow.manifest.builder import ManifestBuilder, emit_output, load_manifest

MANIFEST = """\
github:
  event_name: push
  repository: octo/app
  ref: refs/heads/main
  sha: c0ffee
  token: ghs_secret
inputs:
  uses: octo/deploy/.github/workflows/deploy.yaml@main
  values: |
    env: prod
  inputs: |
    version: "{{ reflow.sha }}"
  debug: "false"
  token: also_secret
"""

TWO_DOCUMENTS = """\
github:
  event_name: push
---
inputs:
  uses: octo/deploy/.github/workflows/deploy.yaml@main
  values: ""
  inputs: ""
  debug: "true"
"""


class TestLoadManifest:
    def test_single_document(self):
        doc = load_manifest(MANIFEST)
        assert set(doc) == {"github", "inputs"}

    def test_two_documents_are_merged(self):
        doc = load_manifest(TWO_DOCUMENTS)
        assert doc.get_path("github.event_name") == "push"
        assert doc.get_path("inputs.debug") == "true"

    def test_decode_error(self):
        with pytest.raises(FormatError):
            load_manifest("github: [unclosed\n")

    def test_non_mapping_document(self):
        with pytest.raises(ManifestError):
            load_manifest("- a\n- b\n")


class TestManifestBuilder:
    def test_writes_run_directory(self, home, capsys):
        run_id = ManifestBuilder(home).build(MANIFEST)

        layout = RunLayout(home, run_id)
        assert uuid.UUID(run_id).version == 4
        github = json.loads((layout.context / "github.json").read_text())
        assert github["sha"] == "c0ffee"
        assert yaml.safe_load((layout.context / "manifest.yaml").read_text()) == {
            "uses": "octo/deploy/.github/workflows/deploy.yaml@main",
            "id": run_id,
            "debug": "false",
        }
        assert (layout.templates / "values.yaml").read_text() == "env: prod\n"
        assert layout.inputs_file.read_text() == 'version: "{{ reflow.sha }}"\n'
        assert layout.outputs.is_dir()

    def test_tokens_never_reach_disk(self, home):
        run_id = ManifestBuilder(home).build(MANIFEST, emit=False)
        for path in RunLayout(home, run_id).root.rglob("*"):
            if path.is_file():
                text = path.read_text()
                assert "ghs_secret" not in text
                assert "also_secret" not in text

    def test_fresh_run_id_each_time(self, home):
        builder = ManifestBuilder(home)
        assert builder.build(MANIFEST, emit=False) != builder.build(MANIFEST, emit=False)

    def test_run_id_printed_to_stdout(self, home, capsys):
        run_id = ManifestBuilder(home).build(MANIFEST)
        assert capsys.readouterr().out == f"run-id={run_id}\n"

    def test_run_id_appended_to_github_output(self, home, tmp_path, monkeypatch, capsys):
        output = tmp_path / "github_output"
        output.write_text("previous=1\n")
        monkeypatch.setenv("GITHUB_OUTPUT", str(output))

        run_id = ManifestBuilder(home).build(MANIFEST)

        assert output.read_text() == f"previous=1\nrun-id={run_id}\n"
        assert capsys.readouterr().out == ""

    @pytest.mark.parametrize("field", ["uses", "values", "inputs", "debug"])
    def test_required_fields(self, home, field):
        doc = yaml.safe_load(MANIFEST)
        del doc["inputs"][field]
        with pytest.raises(ManifestError, match=f"inputs.{field}|'{field}'"):
            ManifestBuilder(home).build(yaml.safe_dump(doc), emit=False)

    def test_fields_must_be_strings(self, home):
        doc = yaml.safe_load(MANIFEST)
        doc["inputs"]["debug"] = False
        with pytest.raises(ManifestError, match="invalid type"):
            ManifestBuilder(home).build(yaml.safe_dump(doc), emit=False)

    def test_github_required(self, home):
        with pytest.raises(ManifestError, match="'github'"):
            ManifestBuilder(home).build("inputs: {}\n", emit=False)

    def test_nothing_written_on_error(self, home):
        with pytest.raises(ManifestError):
            ManifestBuilder(home).build("github: {}\ninputs: {}\n", emit=False)
        assert not (home / "runs").exists()


class TestEmitOutput:
    def test_stdout(self, capsys):
        emit_output("k", "v")
        assert capsys.readouterr().out == "k=v\n"
