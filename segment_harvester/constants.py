from os import getenv
from pathlib import Path

# Source site. WTAP runs on Arc XP, which inlines page data as Fusion.globalContent
SITE_ROOT_URL = 'https://www.wtap.com'
LISTING_URL = getenv('LISTING_URL', 'https://www.wtap.com/search/?query=mental%20health%20mondays')
LISTING_WAIT_SELECTOR = '#resultdata'

SEGMENT_NAME = 'Mental Health Mondays'
FILE_PREFIX = 'Mental-Health-Mondays'
DEFAULT_TITLE = SEGMENT_NAME
ARTIST = getenv('TAG_ARTIST', 'WTAP News')
ALBUM = getenv('TAG_ALBUM', SEGMENT_NAME)

# Storage
DATA_DIR = getenv('DATA_DIR', str(Path.cwd() / '.data'))
AUDIO_SUBDIR = getenv('AUDIO_SUBDIR', 'audio')
CATALOG_FILENAME = getenv('CATALOG_FILENAME', 'episodes.yaml')
FEED_FILENAME = getenv('FEED_FILENAME', 'feed.xml')
CATALOG_FORMAT = getenv('CATALOG_FORMAT', 'yaml')
TEMPLATE_PATH = getenv('TEMPLATE_PATH', '')
BASE_URL = getenv('BASE_URL', '')
SEASON = int(getenv('SEASON', '1'))

# Feed-level overrides, empty means "keep template value"
FEED_TITLE = getenv('FEED_TITLE', '')
FEED_AUTHOR = getenv('FEED_AUTHOR', '')
FEED_DESCRIPTION = getenv('FEED_DESCRIPTION', '')
FEED_LANGUAGE = getenv('FEED_LANGUAGE', '')
FEED_COPYRIGHT = getenv('FEED_COPYRIGHT', '')
FEED_IMAGE = getenv('FEED_IMAGE', '')

# Browser
CHROMIUM_PATH = getenv('CHROMIUM_PATH', '')

# HTTP identity. The site serves stripped markup to non-browser agents.
USER_AGENT = getenv(
    'HTTP_USER_AGENT',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)

# Timeouts, seconds
PAGE_TIMEOUT = int(getenv('PAGE_TIMEOUT', '30'))
NAVIGATION_TIMEOUT = int(getenv('NAVIGATION_TIMEOUT', '30'))
SELECTOR_TIMEOUT = int(getenv('SELECTOR_TIMEOUT', '5'))
DOWNLOAD_TIMEOUT = int(getenv('DOWNLOAD_TIMEOUT', '60'))

MEDIA_EXTENSIONS = ('.mp4', '.m4v', '.mov', '.webm', '.m3u8')
STREAM_EXTENSIONS = ('.m3u8',)

# ffmpeg VBR quality, 0 best .. 9 smallest
AUDIO_QUALITY = getenv('AUDIO_QUALITY', '9')
