"""Tests for the img2pptx command line."""

import logging

from pptx import Presentation

from img2pptx.cli import EXIT_ERROR, EXIT_INVALID, EXIT_OK, main


class TestMain:
    def test_builds_deck_and_bootstraps_template(self, tmp_path, make_image):
        make_image("a.png")
        make_image("b.gif", fmt="GIF")
        template = tmp_path / "bootstrap" / "PresentationTemplate.pptx"
        output = tmp_path / "out" / "deck.pptx"

        code = main([str(make_image.dir), str(output), "--template", str(template)])

        assert code == EXIT_OK
        assert template.exists()
        assert len(Presentation(str(output)).slides) == 2

    def test_extension_filter(self, tmp_path, template, make_image):
        make_image("a.png")
        make_image("b.gif", fmt="GIF")
        output = tmp_path / "deck.pptx"

        main([str(make_image.dir), str(output), "--template", str(template), "--extensions", "gif"])

        assert len(Presentation(str(output)).slides) == 1

    def test_bad_image_exit_code(self, tmp_path, template, make_image, caplog):
        (make_image.dir / "fake.png").write_text("nope")

        with caplog.at_level(logging.ERROR):
            code = main([str(make_image.dir), str(tmp_path / "deck.pptx"), "--template", str(template)])

        assert code == EXIT_ERROR
        assert "fake.png" in caplog.text

    def test_missing_directory(self, tmp_path, template):
        code = main([str(tmp_path / "nowhere"), str(tmp_path / "deck.pptx"), "--template", str(template)])
        assert code == EXIT_ERROR

    def test_validation_findings_exit_code(self, tmp_path, template, make_image, monkeypatch, caplog):
        from img2pptx import assembler
        from img2pptx.validation import ValidationFinding

        make_image("a.png")
        monkeypatch.setattr(
            assembler, "validate_package", lambda path: [ValidationFinding("broken", "/ppt/presentation.xml")]
        )

        with caplog.at_level(logging.WARNING):
            code = main([str(make_image.dir), str(tmp_path / "deck.pptx"), "--template", str(template)])

        assert code == EXIT_INVALID
        assert "broken (/ppt/presentation.xml)" in caplog.text

    def test_oversized_image_exit_code(self, tmp_path, template, header_only_png, caplog):
        image_dir = header_only_png("poster.png", 20000, 10000).parent

        with caplog.at_level(logging.ERROR):
            code = main([str(image_dir), str(tmp_path / "deck.pptx"), "--template", str(template)])

        assert code == EXIT_ERROR
        assert "poster.png" in caplog.text
