import pytest
from github.GithubException import GithubException

from profilesync.errors import PersistError
from profilesync.gist import GistWriter

from conftest import FakeGist, FakeGithub


def test_update_reuses_first_file_key(gist_writer, fake_gist):
    assert gist_writer.update("abc", "New title", "body") == "original.md"
    (key, content), = fake_gist.edits[0].items()
    assert key == "original.md"
    assert content._identity == {"content": "body", "filename": "New title"}


def test_gist_without_files_is_an_error():
    writer = GistWriter(client=FakeGithub(FakeGist({})))
    with pytest.raises(PersistError, match="No files"):
        writer.update("abc", "t", "body")


def test_missing_gist_is_an_error():
    class Missing:
        def get_gist(self, gist_id):
            raise GithubException(404, {"message": "Not Found"}, None)

    writer = GistWriter(client=Missing())
    with pytest.raises(PersistError, match="Unable to get gist"):
        writer.update("abc", "t", "body")
