import asyncio
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from local_images import mcp_server
from local_images.config import Settings
from local_images.errors import NetworkError, SettingsError
from local_images.images import fingerprint
from local_images.processor import ContentProcessor

from helpers import FakeFetcher, png_bytes

URL = "https://example.com/pic.png"


def _serve(data):
    def download(url):
        if url == URL:
            return data
        raise NetworkError("gone")

    return download


class TestMcpTools(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        patcher = patch.dict(mcp_server._processors, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    async def test_localize_images_rewrites_file_and_reports(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir) / "note.md"
            doc.write_text(f"![a]({URL}) ![b](https://example.com/gone.png)", encoding="utf-8")
            with patch("local_images.fetcher.Fetcher.download", side_effect=_serve(data)):
                summary = await mcp_server.localize_images(str(doc))
            self.assertIn("1 saved", summary)
            self.assertIn("1 failed", summary)
            self.assertIn(f"assets/{fingerprint(data)}.png", doc.read_text(encoding="utf-8"))

    async def test_concurrent_calls_share_one_guarded_pipeline(self):
        data = png_bytes()
        fetcher = FakeFetcher({URL: data}, delay=0.05)
        mcp_server._processors[Settings()] = ContentProcessor(Settings(), fetcher=fetcher)
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir) / "note.md"
            doc.write_text(f"![a]({URL})\n", encoding="utf-8")

            first, second = await asyncio.gather(
                mcp_server.localize_images(str(doc)),
                mcp_server.localize_images(str(doc)),
            )

            self.assertEqual(fetcher.max_active, 1)
            self.assertEqual(fetcher.calls, [URL])
            self.assertIn("1 saved", first)
            self.assertIn("0 saved", second)
            assets = Path(temp_dir) / "assets"
            self.assertEqual([p.name for p in assets.iterdir()], [f"{fingerprint(data)}.png"])
            self.assertEqual(
                doc.read_text(encoding="utf-8"), f"![a](assets/{fingerprint(data)}.png)\n"
            )

    async def test_config_file_selects_settings(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config = root / "settings.json"
            config.write_text(json.dumps({"pathStyle": "base_name", "attachmentFolder": "media"}), encoding="utf-8")
            doc = root / "note.md"
            doc.write_text(f"![a]({URL})", encoding="utf-8")
            with patch("local_images.fetcher.Fetcher.download", side_effect=_serve(data)):
                await mcp_server.localize_images(str(doc), config=str(config))
            self.assertEqual(doc.read_text(encoding="utf-8"), f"![a]({fingerprint(data)}.png)")
            self.assertTrue((root / "media" / f"{fingerprint(data)}.png").exists())

    async def test_unreadable_config_raises(self):
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir) / "note.md"
            doc.write_text("text", encoding="utf-8")
            with self.assertRaises(SettingsError):
                await mcp_server.clean_orphans(str(doc), config=str(Path(temp_dir) / "missing.json"))

    async def test_clean_orphans_reports_removed_files(self):
        with TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            (root / "note.md").write_text("nothing here", encoding="utf-8")
            (root / "assets").mkdir()
            (root / "assets" / "old.png").write_bytes(b"x")
            with patch("local_images.storage.send2trash") as trash:
                message = await mcp_server.clean_orphans(str(root / "note.md"))
            self.assertEqual(message, "Removed: old.png")
            trash.assert_called_once()

    async def test_missing_document_raises(self):
        with self.assertRaises(FileNotFoundError):
            await mcp_server.clean_orphans("/does/not/exist.md")


if __name__ == "__main__":
    unittest.main()
