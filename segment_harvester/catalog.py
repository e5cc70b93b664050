"""
The persisted catalog of acquired episodes.

Stored as a human-editable YAML episode list, an RSS 2.0 podcast feed, or
both. Ordinals are handed out once and never reused: the YAML document keeps
a `last_ordinal` high-water mark so hand-deleted entries don't free theirs.
"""
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime
from email.utils import format_datetime, parsedate_to_datetime
from pathlib import Path

import xmltodict
import yaml

from segment_harvester.config import HarvestConfig
from segment_harvester.constants import ARTIST, DEFAULT_TITLE, SITE_ROOT_URL
from segment_harvester.models.episode import AcquiredArtifact, ArticleMeta, CatalogEntry, parse_iso_date
from segment_harvester.utils.logging import get_logger

ITUNES_NS = 'http://www.itunes.com/dtds/podcast-1.0.dtd'
EPISODES_KEY = 'episodes'
LAST_ORDINAL_KEY = 'last_ordinal'

DEFAULT_CHANNEL = {
    'title': DEFAULT_TITLE,
    'link': SITE_ROOT_URL,
    'description': f'{DEFAULT_TITLE} from {ARTIST}',
    'author': ARTIST,
    'language': 'en-us',
}

ENTRY_FIELDS = [f.name for f in fields(CatalogEntry) if f.name != 'extra']


@dataclass
class CatalogDocument:
    """Channel-level metadata plus the ordered entry list."""
    meta: dict = field(default_factory=dict)
    entries: list[CatalogEntry] = field(default_factory=list)
    last_ordinal: int = 0

    @property
    def files(self) -> set[str]:
        return {e.file for e in self.entries}

    @property
    def next_ordinal(self) -> int:
        highest = max((e.ordinal for e in self.entries), default=0)
        return max(highest, self.last_ordinal) + 1

    def __contains__(self, file: str) -> bool:
        return file in self.files


def _date_key(entry: CatalogEntry):
    published = entry.published()
    if published is None:
        return (1, 0.0)
    if published.tzinfo is None:
        published = published.astimezone()
    return (0, published.timestamp())


def merge(doc: CatalogDocument, new_entries: list[CatalogEntry]) -> CatalogDocument:
    """
    Append-or-skip merge of `new_entries` into `doc`. Pure; `doc` is not modified.

    Entries whose file is already catalogued (or repeated within the batch)
    are dropped without consuming an ordinal. Survivors get ordinals from
    next_ordinal upward in ascending publish-date order, undated ones last.
    """
    log = get_logger()
    known = set(doc.files)
    fresh = []
    for entry in new_entries:
        if entry.file in known:
            log.debug(f"Catalog already has {entry.file}, skipping")
            continue
        known.add(entry.file)
        fresh.append(entry)

    ordinal = doc.next_ordinal
    numbered = []
    for entry in sorted(fresh, key=_date_key):
        numbered.append(replace(entry, ordinal=ordinal))
        ordinal += 1

    if numbered:
        log.info(f"Adding {len(numbered)} episodes to catalog, ordinals {numbered[0].ordinal}-{numbered[-1].ordinal}")

    entries = sorted(list(doc.entries) + numbered, key=lambda e: e.ordinal)
    last = max([doc.last_ordinal] + [e.ordinal for e in entries])
    return CatalogDocument(meta=dict(doc.meta), entries=entries, last_ordinal=last)


def catalog_file(artifact: AcquiredArtifact, config: HarvestConfig) -> str:
    """Catalog identity of an artifact: its audio path relative to the data directory."""
    audio_path = Path(artifact.audio_path)
    try:
        return audio_path.relative_to(config.data_path).as_posix()
    except ValueError:
        return audio_path.name


def entry_for(meta: ArticleMeta, artifact: AcquiredArtifact, config: HarvestConfig) -> CatalogEntry:
    """Catalog entry for a finished audio file. Ordinal is assigned by merge()."""
    file = catalog_file(artifact, config)
    published = meta.published() or datetime.now().astimezone()
    return CatalogEntry(
        file=file,
        title=meta.title or DEFAULT_TITLE,
        description=meta.description or '',
        publish_date=published.isoformat(),
        season=config.season,
    )


def enclosure_url(file: str, base_url: str) -> str:
    if not base_url:
        return file
    return base_url.rstrip('/') + '/' + file.lstrip('/')


# YAML

def _entry_from_dict(raw: dict) -> CatalogEntry:
    known = {k: raw[k] for k in ENTRY_FIELDS if k in raw}
    extra = {k: v for k, v in raw.items() if k not in ENTRY_FIELDS}
    if 'publish_date' in known and isinstance(known['publish_date'], date):
        known['publish_date'] = known['publish_date'].isoformat()
    known['ordinal'] = int(known.get('ordinal') or 0)
    known['season'] = int(known.get('season') or 1)
    known.setdefault('title', DEFAULT_TITLE)
    return CatalogEntry(extra=extra, **known)


def _entry_to_dict(entry: CatalogEntry) -> dict:
    data = {k: v for k, v in asdict(entry).items() if k != 'extra'}
    data.update(entry.extra)
    return data


def parse_yaml(text: str) -> CatalogDocument:
    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise ValueError("Catalog YAML must be a mapping")
    episodes = raw.pop(EPISODES_KEY, None) or []
    last = int(raw.pop(LAST_ORDINAL_KEY, 0) or 0)
    entries = [_entry_from_dict(e) for e in episodes if isinstance(e, dict) and e.get('file')]
    return CatalogDocument(meta=raw, entries=entries, last_ordinal=last)


def dump_yaml(doc: CatalogDocument) -> str:
    data = dict(doc.meta)
    data[LAST_ORDINAL_KEY] = doc.last_ordinal
    data[EPISODES_KEY] = [_entry_to_dict(e) for e in sorted(doc.entries, key=lambda e: e.ordinal)]
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


# RSS

def _rfc2822(iso_date: str) -> str | None:
    published = parse_iso_date(iso_date)
    if published is None:
        return None
    if published.tzinfo is None:
        published = published.astimezone()
    return format_datetime(published)


def render_feed(doc: CatalogDocument, base_url: str = '', data_dir: Path = None) -> str:
    """RSS 2.0 document with iTunes tags, one item per entry, newest first."""
    meta = doc.meta
    channel = {
        'title': meta.get('title', DEFAULT_TITLE),
        'link': meta.get('link', SITE_ROOT_URL),
        'description': meta.get('description', ''),
    }
    if meta.get('language'):
        channel['language'] = meta['language']
    if meta.get('copyright'):
        channel['copyright'] = meta['copyright']
    if meta.get('author'):
        channel['itunes:author'] = meta['author']
    if meta.get('image'):
        channel['itunes:image'] = {'@href': meta['image']}
        channel['image'] = {'url': meta['image'], 'title': channel['title'], 'link': channel['link']}

    items = []
    for entry in sorted(doc.entries, key=lambda e: e.ordinal, reverse=True):
        enclosure = {'@url': enclosure_url(entry.file, base_url), '@type': 'audio/mpeg'}
        if data_dir is not None and Path(data_dir, entry.file).exists():
            enclosure['@length'] = str(Path(data_dir, entry.file).stat().st_size)
        item = {
            'title': entry.title,
            'description': entry.description or '',
            'guid': {'@isPermaLink': 'false', '#text': entry.file},
            'enclosure': enclosure,
            'itunes:episode': str(entry.ordinal),
            'itunes:season': str(entry.season),
            'itunes:episodeType': entry.episode_type,
        }
        pub_date = _rfc2822(entry.publish_date)
        if pub_date:
            item['pubDate'] = pub_date
        items.append(item)
    if items:
        channel['item'] = items

    feed = {'rss': {'@version': '2.0', '@xmlns:itunes': ITUNES_NS, 'channel': channel}}
    return xmltodict.unparse(feed, pretty=True)


def parse_feed(text: str, base_url: str = '') -> CatalogDocument:
    """Read a feed written by render_feed() back into a document."""
    channel = xmltodict.parse(text)['rss']['channel'] or {}
    items = channel.get('item', [])
    if not isinstance(items, list):
        # Single-item feed
        items = [items]

    meta = {k: channel[k] for k in ('title', 'link', 'description', 'language', 'copyright') if channel.get(k)}
    if channel.get('itunes:author'):
        meta['author'] = channel['itunes:author']
    if isinstance(channel.get('itunes:image'), dict):
        meta['image'] = channel['itunes:image'].get('@href')

    entries = []
    for item in items:
        guid = item.get('guid')
        file = guid.get('#text') if isinstance(guid, dict) else guid
        if not file:
            url = (item.get('enclosure') or {}).get('@url', '')
            file = url[len(base_url.rstrip('/')) + 1:] if base_url and url.startswith(base_url) else url
        if not file:
            continue
        publish_date = None
        if item.get('pubDate'):
            try:
                publish_date = parsedate_to_datetime(item['pubDate']).isoformat()
            except (TypeError, ValueError):
                publish_date = None
        entries.append(CatalogEntry(
            file=file,
            title=item.get('title') or DEFAULT_TITLE,
            description=item.get('description') or '',
            publish_date=publish_date,
            ordinal=int(item.get('itunes:episode') or 0),
            season=int(item.get('itunes:season') or 1),
            episode_type=item.get('itunes:episodeType') or 'full',
        ))
    doc = CatalogDocument(meta=meta, entries=sorted(entries, key=lambda e: e.ordinal))
    doc.last_ordinal = max((e.ordinal for e in doc.entries), default=0)
    return doc


# Load / save

def _read(path: Path, base_url: str) -> CatalogDocument:
    text = path.read_text(encoding='utf-8')
    if path.suffix.lower() in ('.xml', '.rss'):
        return parse_feed(text, base_url)
    return parse_yaml(text)


def load_catalog(config: HarvestConfig) -> CatalogDocument:
    """
    The catalog to merge into: the persisted document if there is one, else
    the template (channel metadata only), else a minimal document. Feed
    overrides from the config are applied on top.
    """
    log = get_logger()
    source = config.catalog_source
    template = Path(config.template_path) if config.template_path else None

    if source.exists():
        log.info(f"Loading catalog from {source}")
        doc = _read(source, config.base_url)
    elif template is not None and template.exists():
        log.info(f"No catalog at {source}, seeding from template {template}")
        seeded = _read(template, config.base_url)
        doc = CatalogDocument(meta=seeded.meta)
    else:
        log.info(f"No catalog or template found, starting a new catalog at {source}")
        doc = CatalogDocument(meta=dict(DEFAULT_CHANNEL))

    doc.meta.update(config.feed_overrides())
    return doc


def save_catalog(doc: CatalogDocument, config: HarvestConfig) -> list[Path]:
    """Write the document in the configured format(s). Returns the paths written."""
    log = get_logger()
    config.data_path.mkdir(parents=True, exist_ok=True)
    written = []
    if config.writes_yaml:
        config.catalog_path.write_text(dump_yaml(doc), encoding='utf-8')
        written.append(config.catalog_path)
    if config.writes_rss:
        config.feed_path.write_text(render_feed(doc, config.base_url, config.data_path), encoding='utf-8')
        written.append(config.feed_path)
    for path in written:
        log.info(f"Wrote catalog with {len(doc.entries)} episodes to {path}")
    return written
