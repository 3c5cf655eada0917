"""
命令行单元测试
"""

import zipfile

import pytest

from adcreative.cli import build_parser, main


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "runtime.yaml"
    path.write_text(
        "runtime_options:\n"
        "  paths:\n"
        "    storage_dir: {default: storage}\n"
        "  export:\n"
        "    landing_url: {default: 'https://example.cz'}\n",
        encoding="utf-8",
    )
    return path


class TestCli:
    """adcreative 命令测试"""

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_export_writes_package(self, temp_dir, config_file, photo_bytes, capsys):
        source = temp_dir / "photo.jpg"
        source.write_bytes(photo_bytes)
        output = temp_dir / "out" / "package.zip"

        code = main([
            "export", str(source),
            "-f", "google-display-300x250",
            "--headline", "Black Friday Sleva 50%",
            "--cta", "Koupit",
            "-o", str(output),
            "--csv",
            "--config", str(config_file),
        ])

        assert code == 0
        assert "google-display-300x250" in capsys.readouterr().out
        with zipfile.ZipFile(output) as zf:
            names = zf.namelist()
        assert "google/display/300x250.jpg" in names
        assert "google-ads-import.csv" in names

    def test_missing_source(self, temp_dir, config_file, capsys):
        code = main(["export", str(temp_dir / "none.jpg"), "-f", "google", "--config", str(config_file)])
        assert code == 2
        assert "not found" in capsys.readouterr().err

    def test_list_formats(self, config_file, capsys):
        assert main(["formats", "--config", str(config_file)]) == 0
        assert "sklik-bannery-970x310" in capsys.readouterr().out
