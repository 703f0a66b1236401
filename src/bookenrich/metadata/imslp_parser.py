# ABOUTME: Parsing for IMSLP MediaWiki API responses and ISMN music-publisher detection.
# ABOUTME: Ranks a work page's PDF files so Henle and Urtext editions come first.

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from bs4 import BeautifulSoup

from bookenrich.metadata.isbn import ISMN_PREFIX, clean_isbn
from bookenrich.metadata.types import CandidateRecord, Provider

IMSLP_BASE_URL = "https://imslp.org"
IMSLP_API_URL = f"{IMSLP_BASE_URL}/api.php"

# Edition ranking for score PDFs. Filenames carry the edition's publisher.
HENLE_BOOST = 100
URTEXT_BOOST = 90
PETERS_BOOST = 50
BREITKOPF_BOOST = 50
SCHIRMER_BOOST = 40
DURAND_BOOST = 40
COMPLETE_WORK_BOOST = 20
ARRANGEMENT_PENALTY = 30

_PUBLISHER_BOOSTS = (
    ("henle", HENLE_BOOST),
    ("urtext", URTEXT_BOOST),
    ("peters", PETERS_BOOST),
    ("breitkopf", BREITKOPF_BOOST),
    ("schirmer", SCHIRMER_BOOST),
    ("durand", DURAND_BOOST),
)

_PDF_HREF_RE = re.compile(r"^/images/.+/(PMLP\d+-[^/]+\.pdf)$")
_OPUS_RE = re.compile(r"op\.\s*\d+", re.IGNORECASE)
# "Piano Sonata No.14, Op.27 No.2 (Beethoven, Ludwig van)"
_WORK_TITLE_RE = re.compile(r"^(?P<title>.+?)\s*\((?P<composer>[^()]+)\)\s*$")


@dataclass(frozen=True)
class MusicPublisher:
    name: str
    code: str
    prefix: str


# ISMN publisher prefix (digits after 979-0) -> publisher.
MUSIC_PUBLISHERS: dict[str, tuple[str, str]] = {
    "201": ("G. Henle Verlag", "henle"),
    "001": ("Schott Music", "schott"),
    "2001": ("Schott Music", "schott"),
    "006": ("Bärenreiter", "barenreiter"),
    "004": ("Peters Edition", "peters"),
    "048": ("Universal Edition", "universal"),
    "051": ("Breitkopf & Härtel", "breitkopf"),
    "014": ("Boosey & Hawkes", "boosey"),
    "044": ("Durand-Salabert-Eschig", "durand"),
}


def detect_music_publisher(ismn: str | None) -> MusicPublisher | None:
    """Identify the music publisher encoded in an ISMN.

    Prefixes are tried longest first, so "2001" wins over "201" for an
    ISMN starting 979-0-2001.
    """
    if not ismn:
        return None
    cleaned = clean_isbn(ismn)
    if not cleaned.startswith(ISMN_PREFIX):
        return None
    rest = cleaned[len(ISMN_PREFIX):]
    for prefix in sorted(MUSIC_PUBLISHERS, key=len, reverse=True):
        if rest.startswith(prefix):
            name, code = MUSIC_PUBLISHERS[prefix]
            return MusicPublisher(name=name, code=code, prefix=prefix)
    return None


@dataclass(frozen=True)
class ScoreFile:
    filename: str
    priority: int
    is_henle: bool = False
    is_urtext: bool = False

    @property
    def edition_label(self) -> str:
        """External URL label advertising the edition."""
        if self.is_henle:
            return "IMSLP (Henle edition)"
        if self.is_urtext:
            return "IMSLP (Urtext edition)"
        return "imslp"


# "arr", "arr." or "arrangement" as a word; underscores and dashes separate words in filenames.
_ARRANGEMENT_RE = re.compile(r"(?<![a-z])arr(?:\.|angements?|anged)?(?![a-z])")


def score_file_priority(filename: str) -> int:
    lowered = filename.lower()
    priority = sum(boost for marker, boost in _PUBLISHER_BOOSTS if marker in lowered)
    # Numbered pieces ("No.3") are usually excerpts of a larger work.
    if "no." not in lowered and "no_" not in lowered:
        priority += COMPLETE_WORK_BOOST
    if _ARRANGEMENT_RE.search(lowered):
        priority -= ARRANGEMENT_PENALTY
    return priority


def parse_score_files(html: str) -> list[ScoreFile]:
    """Find the PMLP score PDFs linked from a rendered work page, best first."""
    soup = BeautifulSoup(html, "html.parser")
    files: dict[str, ScoreFile] = {}
    for link in soup.find_all("a", href=True):
        match = _PDF_HREF_RE.match(link["href"])
        if not match or match.group(1) in files:
            continue
        filename = match.group(1)
        lowered = filename.lower()
        files[filename] = ScoreFile(
            filename=filename,
            priority=score_file_priority(filename),
            is_henle="henle" in lowered,
            is_urtext="urtext" in lowered,
        )
    return sorted(files.values(), key=lambda f: -f.priority)


def search_query(title: str, composer: str | None = None) -> str:
    """Build a search query, dropping opus numbers IMSLP titles spell differently."""
    cleaned = _OPUS_RE.sub("", title).strip()
    return f"{cleaned} {composer or ''}".strip()


def work_results(data: dict[str, Any]) -> list[dict[str, Any]]:
    """Search hits ordered with work pages ("Title (Composer)") first."""
    results = [r for r in (data.get("query") or {}).get("search") or [] if r.get("title")]
    works = [r for r in results if "(" in r["title"] and ")" in r["title"]]
    return works + [r for r in results if r not in works]


def split_work_title(page_title: str) -> tuple[str, str | None]:
    """Split "Title (Last, First)" into ("Title", "First Last")."""
    match = _WORK_TITLE_RE.match(page_title)
    if not match:
        return page_title, None
    composer = match.group("composer").strip()
    if "," in composer:
        last, first = (part.strip() for part in composer.split(",", 1))
        composer = f"{first} {last}".strip()
    return match.group("title").strip(), composer


def page_url(page_title: str) -> str:
    return f"{IMSLP_BASE_URL}/wiki/{quote(page_title.replace(' ', '_'))}"


def parse_page_html(data: dict[str, Any]) -> str:
    return ((data.get("parse") or {}).get("text") or {}).get("*", "")


def parse_download_url(data: dict[str, Any]) -> str | None:
    """Extract the file URL from an imageinfo query response."""
    for page in ((data.get("query") or {}).get("pages") or {}).values():
        info = page.get("imageinfo") or []
        if info and info[0].get("url"):
            url = info[0]["url"]
            return f"https:{url}" if url.startswith("//") else url
    return None


def build_record(
    page_title: str,
    best_file: ScoreFile | None = None,
    download_url: str | None = None,
) -> CandidateRecord:
    """Build a record for an IMSLP work page and its best score, if any."""
    title, composer = split_work_title(page_title)
    label = best_file.edition_label if best_file else "imslp"
    external_urls = {label: page_url(page_title)}
    if download_url:
        external_urls["imslp_score_pdf"] = download_url
    return CandidateRecord(
        title=title,
        source_provider=Provider.IMSLP,
        authors=(composer,) if composer else (),
        external_urls=external_urls,
        source_id=page_title,
    )
