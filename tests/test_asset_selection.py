"""Tests for platform detection and asset selection."""

import pytest

from binfetch.assets import PlatformInfo, current_platform, filter_assets
from binfetch.assets.platforms import detect_arch, detect_os, is_musl, is_universal
from binfetch.assets.selection import format_rank, is_ignored_asset, score_asset
from binfetch.exceptions import AssetSelectionError
from binfetch.providers import AssetCandidate

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

LINUX_GNU = PlatformInfo("linux", "amd64", "gnu")
LINUX_MUSL = PlatformInfo("linux", "amd64", "musl")
LINUX_ARM64 = PlatformInfo("linux", "arm64", "gnu")
DARWIN_ARM64 = PlatformInfo("darwin", "arm64")
WINDOWS_AMD64 = PlatformInfo("windows", "amd64")

RUST_STYLE = [
    "tool-1.0.0-x86_64-unknown-linux-gnu.tar.gz",
    "tool-1.0.0-x86_64-unknown-linux-musl.tar.gz",
    "tool-1.0.0-aarch64-unknown-linux-gnu.tar.gz",
    "tool-1.0.0-x86_64-apple-darwin.tar.gz",
    "tool-1.0.0-x86_64-pc-windows-msvc.zip",
    "tool-1.0.0-x86_64-unknown-linux-gnu.tar.gz.sha256",
    "tool_1.0.0_amd64.deb",
]


def _candidates(*names):
    return [AssetCandidate(name=name, url=f"https://dl.example/{name}") for name in names]


class TestPlatformVocabulary:
    """Tests for OS / arch token detection."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("tool_linux_amd64", {"linux"}),
            ("tool-x86_64-apple-darwin", {"darwin"}),
            ("tool-macOS-arm64", {"darwin"}),
            ("tool-windows-amd64.zip", {"windows"}),
            ("tool.exe", {"windows"}),
            ("tool-freebsd-amd64", {"freebsd"}),
            ("darwinian-tool", set()),
        ],
    )
    def test_detect_os(self, name, expected):
        assert detect_os(name) == expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("tool_linux_amd64", {"amd64"}),
            ("tool-x86_64-unknown-linux-gnu", {"amd64"}),
            ("tool-linux-x64", {"amd64"}),
            ("tool-aarch64-linux", {"arm64"}),
            ("tool-linux-arm64", {"arm64"}),
            ("tool-linux-386", {"386"}),
            ("tool-i686-pc-windows-msvc", {"386"}),
            ("tool-linux-armv7", {"arm"}),
            ("tool-linux-armhf", {"arm"}),
            ("tool-linux", set()),
        ],
    )
    def test_detect_arch(self, name, expected):
        assert detect_arch(name) == expected

    def test_universal_and_musl_markers(self):
        assert is_universal("tool-darwin-universal.tar.gz")
        assert is_universal("tool-macos-universal2")
        assert not is_universal("tool-darwin-arm64")
        assert is_musl("tool-x86_64-unknown-linux-musl")
        assert not is_musl("tool-x86_64-unknown-linux-gnu")

    def test_current_platform_normalizes_machine(self, mocker):
        mocker.patch(
            "binfetch.assets.platforms.platform.libc_ver", return_value=("glibc", "2.35")
        )
        assert current_platform("Linux", "x86_64") == PlatformInfo("linux", "amd64", "gnu")
        assert current_platform("Darwin", "arm64") == PlatformInfo("darwin", "arm64")
        assert current_platform("Windows", "AMD64") == PlatformInfo("windows", "amd64")

    def test_current_platform_detects_musl(self, mocker):
        mocker.patch("binfetch.assets.platforms.platform.libc_ver", return_value=("", ""))
        mocker.patch(
            "binfetch.assets.platforms.glob.glob",
            return_value=["/lib/ld-musl-x86_64.so.1"],
        )
        assert current_platform("Linux", "aarch64") == PlatformInfo("linux", "arm64", "musl")

    def test_platform_str(self):
        assert str(LINUX_MUSL) == "linux/amd64 (musl)"
        assert str(DARWIN_ARM64) == "darwin/arm64"


class TestScoring:
    """Tests for the per-asset helpers."""

    @pytest.mark.parametrize(
        "name",
        [
            "checksums.txt",
            "tool_1.0_SHA256SUMS",
            "tool.tar.gz.sha256",
            "tool.tar.gz.sig",
            "tool.tar.gz.asc",
            "tool.sbom.json",
            "tool_1.0_amd64.deb",
            "tool-1.0.x86_64.rpm",
            "tool-1.0-src.tar.gz",
            "tool-linux-amd64.7z",
            "tool-linux-amd64.tar.zst",
        ],
    )
    def test_ignored_assets(self, name):
        assert is_ignored_asset(name)

    @pytest.mark.parametrize(
        "name",
        [
            "tool-linux-amd64",
            "tool-linux-amd64.tar.gz",
            "tool.exe",
            "tool.zip",
            "src_linux_amd64",
            "src-darwin-arm64.tar.gz",
        ],
    )
    def test_installable_assets(self, name):
        assert not is_ignored_asset(name)

    def test_format_rank_order(self):
        names = [
            "t.bz2",
            "t.xz",
            "t.gz",
            "t.zip",
            "t.tar",
            "t.tar.bz2",
            "t.tar.xz",
            "t.tgz",
            "t.exe",
        ]
        ranks = [format_rank(n) for n in names]
        assert ranks == sorted(ranks, reverse=True)
        assert format_rank("t") == format_rank("t.exe") == 0
        assert format_rank("t.tar.gz") == format_rank("t.tgz")

    def test_score_values(self):
        assert score_asset("tool-linux-amd64", LINUX_GNU) == 3
        assert score_asset("tool-linux", LINUX_GNU) == 2
        assert score_asset("tool-amd64", LINUX_GNU) == 1
        assert score_asset("tool", LINUX_GNU) == 0
        assert score_asset("tool-darwin-amd64", LINUX_GNU) is None
        assert score_asset("tool-linux-arm64", LINUX_GNU) is None

    def test_universal_counts_as_arch_match_on_macos(self):
        assert score_asset("tool-darwin-universal", DARWIN_ARM64) == 3
        assert score_asset("tool-darwin-amd64", DARWIN_ARM64) is None


class TestFilterAssets:
    """Tests for filter_assets."""

    @pytest.mark.parametrize(
        "target, expected",
        [
            (LINUX_GNU, "tool-1.0.0-x86_64-unknown-linux-gnu.tar.gz"),
            (LINUX_MUSL, "tool-1.0.0-x86_64-unknown-linux-musl.tar.gz"),
            (LINUX_ARM64, "tool-1.0.0-aarch64-unknown-linux-gnu.tar.gz"),
            (WINDOWS_AMD64, "tool-1.0.0-x86_64-pc-windows-msvc.zip"),
        ],
    )
    def test_rust_style_release(self, target, expected):
        selected = filter_assets("tool", _candidates(*RUST_STYLE), target)
        assert selected.name == expected
        assert selected.url == f"https://dl.example/{expected}"

    def test_no_match_lists_candidates(self):
        with pytest.raises(AssetSelectionError) as exc_info:
            filter_assets("tool", _candidates(*RUST_STYLE), DARWIN_ARM64)

        assert "No asset matches" in str(exc_info.value)
        assert exc_info.value.candidates == RUST_STYLE

    def test_release_without_assets(self):
        with pytest.raises(AssetSelectionError) as exc_info:
            filter_assets("tool", [], LINUX_GNU)
        assert "no assets" in str(exc_info.value)

    def test_only_checksums(self):
        with pytest.raises(AssetSelectionError):
            filter_assets("tool", _candidates("checksums.txt", "tool.sig"), LINUX_GNU)

    def test_ambiguous_match_raises(self):
        with pytest.raises(AssetSelectionError) as exc_info:
            filter_assets(
                "suite", _candidates("alpha-linux-amd64", "beta-linux-amd64"), LINUX_GNU
            )

        assert "Multiple assets" in str(exc_info.value)
        assert exc_info.value.candidates == ["alpha-linux-amd64", "beta-linux-amd64"]

    def test_repo_name_breaks_ties(self):
        selected = filter_assets(
            "tool", _candidates("companion-linux-amd64", "tool-linux-amd64"), LINUX_GNU
        )
        assert selected.name == "tool-linux-amd64"

    def test_format_precedence_breaks_ties(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-linux-amd64.zip", "tool-linux-amd64.tar.gz"),
            LINUX_GNU,
        )
        assert selected.name == "tool-linux-amd64.tar.gz"

    def test_bare_binary_preferred_over_archive(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-linux-amd64.tar.gz", "tool-linux-amd64"),
            LINUX_GNU,
        )
        assert selected.name == "tool-linux-amd64"

    def test_exact_arch_beats_os_only(self):
        selected = filter_assets(
            "tool", _candidates("tool-linux.tar.gz", "tool-linux-arm64.tar.gz"), LINUX_ARM64
        )
        assert selected.name == "tool-linux-arm64.tar.gz"

    def test_os_only_asset_is_accepted(self):
        selected = filter_assets("tool", _candidates("tool-linux.tar.gz"), LINUX_ARM64)
        assert selected.name == "tool-linux.tar.gz"

    def test_other_arches_are_discarded(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-linux-386", "tool-linux-armv7", "tool-linux-amd64"),
            LINUX_GNU,
        )
        assert selected.name == "tool-linux-amd64"

    def test_macos_universal(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-linux-amd64.tar.gz", "tool-macos-universal.tar.gz"),
            DARWIN_ARM64,
        )
        assert selected.name == "tool-macos-universal.tar.gz"

    def test_windows_exe(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-linux-amd64", "tool-windows-amd64.exe", "tool-darwin-amd64"),
            WINDOWS_AMD64,
        )
        assert selected.name == "tool-windows-amd64.exe"

    def test_defaults_to_running_platform(self, mocker):
        mocker.patch(
            "binfetch.assets.selection.current_platform", return_value=DARWIN_ARM64
        )
        selected = filter_assets(
            "tool", _candidates("tool-linux-amd64", "tool-darwin-arm64")
        )
        assert selected.name == "tool-darwin-arm64"

    def test_program_named_src_is_not_a_source_archive(self):
        selected = filter_assets(
            "src-cli",
            _candidates(
                "src_linux_amd64", "src_darwin_amd64", "src_windows_amd64.exe"
            ),
            LINUX_GNU,
        )
        assert selected.name == "src_linux_amd64"

    def test_source_archive_skipped_next_to_platform_build(self):
        selected = filter_assets(
            "tool",
            _candidates("tool-1.0-src.tar.gz", "tool-1.0-source-linux-amd64.tar.gz"),
            LINUX_GNU,
        )
        assert selected.name == "tool-1.0-source-linux-amd64.tar.gz"
