"""Tests for the OBS source API client."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from common.errors import (
    ApiError,
    HistoryConsistencyError,
    ObsConnectionError,
    SourceConflictError,
)
from obs.client import ObsClient, parse_directory, parse_revision_list, parse_status

REVISION_LIST = """<revisionlist>
  <revision rev="2" vrev="2">
    <srcmd5>3e0e3566753dca94980d3acd23b82efd</srcmd5>
    <version>0.5.1</version>
    <time>1585133120</time>
    <user>dirkmueller</user>
    <comment>Bump patched dependency on bundler to 2.1</comment>
    <requestid>788130</requestid>
  </revision>
  <revision rev="1" vrev="1">
    <srcmd5>c4458905a38f029e0572e848e8083eb5</srcmd5>
    <version>unknown</version>
    <time>1569151375</time>
    <user>unknown</user>
    <requestid></requestid>
  </revision>
</revisionlist>
"""

EXPANDED_DIRECTORY = """<directory name="vagrant-sshfs" rev="9a3b2c" vrev="3" srcmd5="9a3b2c">
  <linkinfo project="Virtualization:vagrant" package="vagrant-sshfs" srcmd5="abc123"
            baserev="def456" lsrcmd5="fedcba"/>
  <entry name="vagrant-sshfs.spec" md5="0f1e" size="4096" mtime="1569151375"/>
  <entry name="vagrant-sshfs.changes" md5="aa11" size="128" mtime="1569151375"/>
</directory>
"""

STATUS_REPLY = """<status code="expand_error">
  <summary>conflict in file vagrant-sshfs.spec</summary>
  <details>400 expand error</details>
</status>
"""


def _response(status_code=200, text=""):
    res = MagicMock()
    res.status_code = status_code
    res.ok = 200 <= status_code < 300
    res.text = text
    return res


class TestParseRevisionList:
    """Test parsing of <revisionlist> replies."""

    def test_parses_and_sorts_revisions(self):
        """Revisions are returned oldest first with all fields converted."""
        revisions = parse_revision_list(REVISION_LIST, "Virtualization:vagrant", "vagrant-scp")

        assert [r.revision_number for r in revisions] == [1, 2]
        head = revisions[1]
        assert head.revision_hash == "3e0e3566753dca94980d3acd23b82efd"
        assert head.version == "0.5.1"
        assert head.version_revision == 2
        assert head.author_id == "dirkmueller"
        assert head.request_id == 788130
        assert head.commit_message == "Bump patched dependency on bundler to 2.1"
        assert head.commit_time == datetime(2020, 3, 25, 10, 45, 20, tzinfo=timezone.utc)
        assert head.project == "Virtualization:vagrant"
        assert head.package == "vagrant-scp"

    def test_normalizes_unknown_and_missing_values(self):
        """'unknown' users/versions and empty request ids become None."""
        first = parse_revision_list(REVISION_LIST, "prj", "pkg")[0]

        assert first.author_id is None
        assert first.version is None
        assert first.request_id is None
        assert first.commit_message == ""

    def test_empty_revision_list(self):
        """A package without history yields no revisions."""
        assert parse_revision_list("<revisionlist/>", "prj", "pkg") == []

    def test_rejects_unexpected_reply(self):
        """Anything but a revision list is an inconsistency."""
        with pytest.raises(HistoryConsistencyError):
            parse_revision_list("<directory/>", "prj", "pkg")

    def test_rejects_revision_without_hash(self):
        """Each revision needs its srcmd5."""
        with pytest.raises(HistoryConsistencyError):
            parse_revision_list('<revisionlist><revision rev="1"><time>1</time></revision></revisionlist>', "prj", "pkg")


class TestParseDirectory:
    """Test parsing of <directory> replies."""

    def test_parses_files_and_link(self):
        """Entries and the link descriptor are extracted."""
        snapshot = parse_directory(EXPANDED_DIRECTORY, expanded=True)

        assert [f.name for f in snapshot.files] == ["vagrant-sshfs.spec", "vagrant-sshfs.changes"]
        assert snapshot.files[0].size == 4096
        assert snapshot.files[0].md5_hash == "0f1e"
        assert snapshot.reported_revision_hash == "9a3b2c"
        assert snapshot.was_expanded is True
        assert len(snapshot.link_infos) == 1
        raw = snapshot.link_infos[0]
        assert raw.project == "Virtualization:vagrant"
        assert raw.baserev == "def456"
        assert raw.srcmd5 == "abc123"
        assert raw.rev is None

    def test_falls_back_to_srcmd5(self):
        """Without a rev attribute the srcmd5 attribute is the reported hash."""
        snapshot = parse_directory('<directory srcmd5="aa"/>', expanded=False)

        assert snapshot.reported_revision_hash == "aa"
        assert snapshot.files == ()
        assert snapshot.was_expanded is False

    def test_without_any_hash(self):
        """A listing without hashes reports none."""
        assert parse_directory("<directory/>", expanded=True).reported_revision_hash is None


class TestParseStatus:
    """Test parsing of OBS status replies."""

    def test_extracts_summary(self):
        summary, details = parse_status(STATUS_REPLY)
        assert summary == "conflict in file vagrant-sshfs.spec"
        assert details == "400 expand error"

    def test_ignores_non_status_bodies(self):
        assert parse_status("<html><body>Login</body></html>") == (None, None)
        assert parse_status("not xml at all") == (None, None)


class TestObsClient:
    """Test the HTTP behavior of ObsClient."""

    def test_fetch_revisions_builds_history_url(self):
        """The _history route is requested with quoted names."""
        session = MagicMock()
        session.get.return_value = _response(text=REVISION_LIST)
        client = ObsClient("https://api.example.org/", session=session, timeout=5)

        revisions = client.fetch_revisions("Virtualization:vagrant", "vagrant-scp")

        assert len(revisions) == 2
        url = session.get.call_args[0][0]
        assert url == "https://api.example.org/source/Virtualization%3Avagrant/vagrant-scp/_history"
        assert session.get.call_args[1]["timeout"] == 5

    def test_fetch_expanded_snapshot_params(self):
        """Expanded snapshots are requested relative to the link's base revision."""
        session = MagicMock()
        session.get.return_value = _response(text=EXPANDED_DIRECTORY)
        client = ObsClient("https://api.example.org", session=session)

        snapshot = client.fetch_snapshot("prj", "pkg", "abc", expand=True)

        assert snapshot.was_expanded is True
        assert session.get.call_args[1]["params"] == {"expand": "1", "linkrev": "base", "rev": "abc"}

    def test_fetch_unexpanded_snapshot_params(self):
        session = MagicMock()
        session.get.return_value = _response(text='<directory srcmd5="abc"/>')
        client = ObsClient("https://api.example.org", session=session)

        snapshot = client.fetch_snapshot("prj", "pkg", "abc", expand=False)

        assert snapshot.was_expanded is False
        assert session.get.call_args[1]["params"] == {"expand": "0", "rev": "abc"}

    def test_expansion_conflict_raises_source_conflict(self):
        """HTTP 400 on an expanded fetch is a source conflict."""
        session = MagicMock()
        session.get.return_value = _response(400, STATUS_REPLY)
        client = ObsClient("https://api.example.org", session=session)

        with pytest.raises(SourceConflictError) as excinfo:
            client.fetch_snapshot("prj", "pkg", "abc", expand=True)

        assert excinfo.value.summary == "conflict in file vagrant-sshfs.spec"

    def test_bad_request_without_expansion_is_api_error(self):
        """HTTP 400 on an unexpanded fetch is an ordinary API error."""
        session = MagicMock()
        session.get.return_value = _response(400, STATUS_REPLY)
        client = ObsClient("https://api.example.org", session=session)

        with pytest.raises(ApiError) as excinfo:
            client.fetch_snapshot("prj", "pkg", "abc", expand=False)

        assert not isinstance(excinfo.value, SourceConflictError)

    def test_not_found_raises_api_error(self):
        session = MagicMock()
        session.get.return_value = _response(404, "<status code=\"unknown_package\"><summary>pkg</summary></status>")
        client = ObsClient("https://api.example.org", session=session)

        with pytest.raises(ApiError) as excinfo:
            client.fetch_revisions("prj", "pkg")

        assert excinfo.value.status_code == 404
        assert excinfo.value.summary == "pkg"

    def test_invalid_directory_is_inconsistency(self):
        session = MagicMock()
        session.get.return_value = _response(text="<revisionlist/>")
        client = ObsClient("https://api.example.org", session=session)

        with pytest.raises(HistoryConsistencyError) as excinfo:
            client.fetch_snapshot("prj", "pkg", "abc", expand=False)

        assert excinfo.value.revision == "abc"

    def test_timeout_raises_connection_error(self):
        """Transport failures surface as ObsConnectionError."""
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        client = ObsClient("https://api.example.org", session=session, timeout=1)

        with pytest.raises(ObsConnectionError) as excinfo:
            client.fetch_revisions("prj", "pkg")

        assert "timed out" in str(excinfo.value)

    @patch("obs.client.http_client.new_session")
    def test_credentials_are_passed_to_session(self, mock_new_session):
        ObsClient("https://api.example.org", username="user", password="secret")

        mock_new_session.assert_called_once_with("user", "secret")
