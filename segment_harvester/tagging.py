"""Write ID3 tags and file timestamps onto a finished audio file."""
import os
from pathlib import Path

from mutagen.id3 import COMM, ID3, ID3NoHeaderError, TALB, TDAT, TDRC, TIT2, TPE1, TYER

from segment_harvester.constants import ALBUM, ARTIST, DEFAULT_TITLE
from segment_harvester.models.episode import ArticleMeta
from segment_harvester.utils.logging import get_logger


def build_tags(meta: ArticleMeta, tags: ID3 = None) -> ID3:
    """
    Map article metadata onto ID3 frames.

    Date frames are only written when the publish date parses: TDRC as
    YYYY-MM-DD, plus TYER and TDAT (DDMM) for ID3v2.3 players.
    """
    tags = tags if tags is not None else ID3()
    tags['TIT2'] = TIT2(encoding=3, text=meta.title or DEFAULT_TITLE)
    tags['TPE1'] = TPE1(encoding=3, text=ARTIST)
    tags['TALB'] = TALB(encoding=3, text=ALBUM)
    tags.delall('COMM')
    tags.add(COMM(encoding=3, lang='eng', desc='', text=meta.description or ''))

    published = meta.published()
    if published:
        tags['TDRC'] = TDRC(encoding=3, text=published.strftime('%Y-%m-%d'))
        tags['TYER'] = TYER(encoding=3, text=published.strftime('%Y'))
        tags['TDAT'] = TDAT(encoding=3, text=published.strftime('%d%m'))
    return tags


def set_mtime(audio_path: Path, meta: ArticleMeta) -> bool:
    """Set the file's access/modification time to the publish date. Best effort."""
    published = meta.published()
    if not published:
        return False
    try:
        ts = published.timestamp()
        os.utime(audio_path, (ts, ts))
    except (OSError, OverflowError, ValueError) as e:
        get_logger().warning(f"Could not set timestamp on {audio_path}: {e}")
        return False
    return True


def tag(audio_path: Path, meta: ArticleMeta) -> bool:
    """
    Tag `audio_path` from `meta` and stamp its mtime.

    Returns:
        True if the tags were written. A failed mtime update does not count
        as failure.
    """
    log = get_logger()
    try:
        try:
            tags = ID3(audio_path)
        except ID3NoHeaderError:
            tags = ID3()
        build_tags(meta, tags)
        tags.save(audio_path)
    except Exception as e:
        log.error(f"Failed to write tags to {audio_path}: {e}")
        return False

    log.info(f"Tagged {Path(audio_path).name}: {meta.title or DEFAULT_TITLE}")
    set_mtime(audio_path, meta)
    return True
