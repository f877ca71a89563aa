import pytest
from io import BytesIO
from uuid import uuid4

from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from app.core import storage
from app.core.storage import (
    delete_plagiarism_evidence,
    get_file_extension,
    read_csv_upload,
    save_plagiarism_evidence,
    validate_csv_upload,
)
from app.models import Task


def make_upload(filename, content=b"group_name,username\n", content_type=None):
    headers = Headers({"content-type": content_type}) if content_type else None
    return UploadFile(filename=filename, file=BytesIO(content), headers=headers)


class TestCsvUpload:
    """Test CSV upload validation."""

    def test_get_file_extension(self):
        assert get_file_extension("Groups.CSV") == ".csv"
        assert get_file_extension("groups") == ""

    def test_validate_csv_upload_success(self):
        # Should not raise exception
        validate_csv_upload(make_upload("groups.csv", content_type="text/csv"))

    def test_validate_no_filename(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_csv_upload(make_upload(None))
        assert "No filename provided" in exc_info.value.detail

    def test_validate_invalid_extension(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_csv_upload(make_upload("groups.xlsx"))
        assert exc_info.value.status_code == 400
        assert "not allowed" in exc_info.value.detail

    def test_validate_content_type(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_csv_upload(make_upload("groups.csv", content_type="image/png"))
        assert exc_info.value.status_code == 415

    @pytest.mark.asyncio
    async def test_read_csv_upload(self):
        data = await read_csv_upload(make_upload("groups.csv", b"group_name,username\nA,b\n"))
        assert data == b"group_name,username\nA,b\n"

    @pytest.mark.asyncio
    async def test_read_csv_upload_too_large(self, monkeypatch):
        monkeypatch.setattr(storage.settings, "MAX_CSV_SIZE", 10)

        with pytest.raises(HTTPException) as exc_info:
            await read_csv_upload(make_upload("groups.csv", b"x" * 11))
        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_read_csv_upload_binary(self):
        with pytest.raises(HTTPException) as exc_info:
            await read_csv_upload(make_upload("groups.csv", b"PK\x03\x04\x00\x00"))
        assert exc_info.value.status_code == 415


class TestPlagiarismEvidence:
    """Test plagiarism evidence files."""

    @pytest.fixture(autouse=True)
    def upload_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage.settings, "UPLOAD_DIR", str(tmp_path))
        return tmp_path

    def test_save_and_delete(self):
        task = Task(project_id=uuid4(), definition="2.1P")
        other_id = uuid4()

        path = save_plagiarism_evidence(task, other_id, "<html>match</html>")

        assert path.read_text(encoding="utf-8") == "<html>match</html>"
        assert delete_plagiarism_evidence(task, other_id) is True
        assert not path.exists()

    def test_delete_missing(self):
        task = Task(project_id=uuid4(), definition="2.1P")
        assert delete_plagiarism_evidence(task, uuid4()) is False

    def test_group_tasks_share_directory(self, upload_dir):
        submission_id = uuid4()
        first = Task(project_id=uuid4(), definition="3.1P", group_submission_id=submission_id)
        second = Task(project_id=uuid4(), definition="3.1P", group_submission_id=submission_id)

        assert storage.plagiarism_dir(first) == storage.plagiarism_dir(second)
        assert storage.plagiarism_dir(first) == upload_dir / "plagiarism" / f"group-{submission_id}"
