import io
import os
import threading
from unittest.mock import patch

import pytest
from fastapi import UploadFile

from speech_to_text import uploads
from speech_to_text.uploads import saved_upload, stored_filename


class TestStoredFilename:
    def test_prefixes_epoch_millis(self):
        assert stored_filename("sample.wav", now=1700000000.5) == "1700000000500-sample.wav"

    @pytest.mark.parametrize("original", ["../../etc/sample.wav", "C:\\Users\\me\\sample.wav"])
    def test_strips_client_path(self, original):
        assert stored_filename(original, now=1) == "1000-sample.wav"

    def test_missing_name_gets_placeholder(self):
        assert stored_filename(None, now=2) == "2000-audio"


class TestSavedUpload:
    @pytest.mark.asyncio
    async def test_writes_content_and_removes_file(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"audio-bytes"), filename="a.wav")

        async with saved_upload(upload, str(tmp_path)) as path:
            assert os.path.dirname(path) == str(tmp_path)
            with open(path, "rb") as f:
                assert f.read() == b"audio-bytes"

        assert not os.path.exists(path)
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_removes_file_when_block_raises(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"x"), filename="a.wav")

        with pytest.raises(RuntimeError):
            async with saved_upload(upload, str(tmp_path)):
                raise RuntimeError("transcription blew up")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_tolerates_file_already_removed(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"x"), filename="a.wav")

        async with saved_upload(upload, str(tmp_path)) as path:
            os.remove(path)

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_write_runs_off_the_event_loop(self, tmp_path):
        upload = UploadFile(file=io.BytesIO(b"x"), filename="a.wav")
        real_write = uploads._write_bytes
        threads = []

        def spy(fd, content):
            threads.append(threading.get_ident())
            real_write(fd, content)

        with patch("speech_to_text.uploads._write_bytes", side_effect=spy):
            async with saved_upload(upload, str(tmp_path)) as path:
                with open(path, "rb") as f:
                    assert f.read() == b"x"

        assert len(threads) == 1
        assert threads[0] != threading.get_ident()
