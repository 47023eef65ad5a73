import datetime as dt
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from local_images.config import Settings
from local_images.images import fingerprint
from local_images.naming import decide, display_path, resolve_media_dir

from helpers import png_bytes

TODAY = dt.date(2024, 5, 1)


class TestResolveMediaDir(unittest.TestCase):
    def test_default_folder_is_next_to_document(self):
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir).resolve() / "notes" / "trip.md"
            self.assertEqual(resolve_media_dir(doc, Settings(), TODAY), doc.parent / "assets")

    def test_template_placeholders_are_filled(self):
        settings = Settings(attachment_folder="media/${documentBaseName}-${date}/${fileName}")
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir).resolve() / "trip.md"
            self.assertEqual(
                resolve_media_dir(doc, settings, TODAY),
                doc.parent / "media" / "trip-2024-05-01" / "trip",
            )

    def test_date_format_is_honoured(self):
        settings = Settings(attachment_folder="${date}", date_format="%Y%m%d")
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir).resolve() / "trip.md"
            self.assertEqual(resolve_media_dir(doc, settings, TODAY).name, "20240501")

    def test_under_root_uses_absolute_media_root(self):
        with TemporaryDirectory() as temp_dir, TemporaryDirectory() as root:
            settings = Settings(
                save_location="under_root", media_root=root, attachment_folder="${fileName}"
            )
            doc = Path(temp_dir) / "trip.md"
            self.assertEqual(resolve_media_dir(doc, settings, TODAY), Path(root) / "trip")

    def test_recomputed_when_date_changes(self):
        settings = Settings(attachment_folder="${date}")
        with TemporaryDirectory() as temp_dir:
            doc = Path(temp_dir) / "trip.md"
            first = resolve_media_dir(doc, settings, TODAY)
            second = resolve_media_dir(doc, settings, TODAY + dt.timedelta(days=1))
            self.assertNotEqual(first, second)


class TestDecide(unittest.IsolatedAsyncioTestCase):
    async def test_dedup_names_by_fingerprint(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            media = Path(temp_dir)
            decision = await decide(media, "https://example.com/a.png?x=1", data, Settings())
            self.assertEqual(decision.path, media / f"{fingerprint(data)}.png")
            self.assertTrue(decision.must_write)

    async def test_existing_file_is_reused(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            media = Path(temp_dir)
            (media / f"{fingerprint(data)}.png").write_bytes(data)
            decision = await decide(media, "https://example.com/a.png", data, Settings())
            self.assertFalse(decision.must_write)

    async def test_original_name_is_cleaned(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            media = Path(temp_dir)
            decision = await decide(
                media,
                "https://example.com/img/My  Holiday<1>.jpg?size=2",
                data,
                Settings(deduplicate=False),
            )
            self.assertEqual(decision.path, media / "My_Holiday_1_.png")

    async def test_data_uri_without_dedup_uses_fingerprint(self):
        data = png_bytes()
        with TemporaryDirectory() as temp_dir:
            media = Path(temp_dir)
            decision = await decide(
                media, "data:image/png;base64,AAAA", data, Settings(deduplicate=False)
            )
            self.assertEqual(decision.path, media / f"{fingerprint(data)}.png")

    async def test_unknown_type_is_skipped_by_default(self):
        with TemporaryDirectory() as temp_dir:
            decision = await decide(Path(temp_dir), "https://example.com/blob", b"???", Settings())
            self.assertTrue(decision.skipped)

    async def test_unknown_type_allowed_by_policy(self):
        with TemporaryDirectory() as temp_dir:
            decision = await decide(
                Path(temp_dir),
                "https://example.com/blob",
                b"???",
                Settings(download_unknown_types=True),
            )
            self.assertEqual(decision.path.suffix, ".unknown")


class TestDisplayPath(unittest.TestCase):
    def test_styles(self):
        with TemporaryDirectory() as temp_dir:
            base = Path(temp_dir).resolve()
            doc = base / "trip.md"
            image = base / "assets" / "a.png"
            self.assertEqual(display_path(doc, image, Settings()), "assets/a.png")
            self.assertEqual(display_path(doc, image, Settings(path_style="base_name")), "a.png")
            self.assertEqual(
                display_path(doc, image, Settings(path_style="full_path")),
                str(image).replace("\\", "/"),
            )


if __name__ == "__main__":
    unittest.main()
