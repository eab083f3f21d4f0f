"""
YAML file storage for seasons, season brackets and contests.

Layout under the data directory:

    seasons.yaml                season registry
    seasons/<season>.yaml       seeds + games of one season (SeasonBracket)
    contests/<contest>.yaml     one contest with its participants and picks

Writers hold a FileLock on the file they change for the whole
load -> mutate -> save cycle. Files are written to a temporary file and
moved into place, so readers never see a partially written document.
"""
import logging
import os
import re
import tempfile
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

import yaml
from filelock import FileLock

from playoffs.bracket import SeasonBracket
from playoffs.errors import NotFoundError, ValidationError
from playoffs.models import Contest, Season

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_-]*$')


def slugify(name: str) -> str:
    """Convert a season name to a filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'season'


def _check_id(kind: str, value) -> str:
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise NotFoundError(f'{kind} {value!r} not found')
    return value


def read_yaml(path):
    """Load a YAML document, or None if the file does not exist or is empty."""
    if not os.path.exists(path):
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def write_yaml(path, data):
    """Write a YAML document by replacing the file atomically."""
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix='.tmp-', suffix='.yaml', dir=directory)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class SeasonRepository:
    """Season registry plus one SeasonBracket file per season."""

    def __init__(self, data_dir, lock_timeout=10):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout
        self.registry_file = os.path.join(data_dir, 'seasons.yaml')
        self.seasons_dir = os.path.join(data_dir, 'seasons')

    def _lock(self, path) -> FileLock:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return FileLock(path + '.lock', timeout=self.lock_timeout)

    def _bracket_path(self, season_id) -> str:
        return os.path.join(self.seasons_dir, f'{_check_id("Season", season_id)}.yaml')

    # -- registry ----------------------------------------------------------

    def list_seasons(self) -> List[Season]:
        try:
            data = read_yaml(self.registry_file)
        except yaml.YAMLError as e:
            logger.warning(f'Failed to parse {self.registry_file}: {e}')
            return []
        if not data:
            return []
        seasons = [Season.from_dict(s) for s in data.get('seasons', [])]
        return sorted(seasons, key=lambda s: (-s.year, s.name))

    def get_season(self, season_id) -> Season:
        for season in self.list_seasons():
            if season.id == season_id:
                return season
        raise NotFoundError(f'Season {season_id!r} not found')

    def _save_registry(self, seasons: List[Season]):
        write_yaml(self.registry_file, {'seasons': [s.to_dict() for s in seasons]})

    def create_season(self, name, year) -> Season:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('Season name is required')
        try:
            year = int(year)
        except (TypeError, ValueError):
            raise ValidationError('Season year must be a number')

        with self._lock(self.registry_file):
            seasons = self.list_seasons()
            slug = slugify(name)
            if any(s.id == slug or s.name == name.strip() for s in seasons):
                raise ValidationError(f'A season named {name.strip()!r} already exists')
            season = Season(slug, name.strip(), year, 'active', datetime.now().isoformat())
            seasons.append(season)
            self._save_registry(seasons)
            write_yaml(self._bracket_path(slug), SeasonBracket(slug).to_dict())
        logger.info(f'Created season {slug} ({year})')
        return season

    def set_season_status(self, season_id, status) -> Season:
        with self._lock(self.registry_file):
            seasons = self.list_seasons()
            for season in seasons:
                if season.id == season_id:
                    season.status = status
                    self._save_registry(seasons)
                    return season
        raise NotFoundError(f'Season {season_id!r} not found')

    # -- brackets ----------------------------------------------------------

    def load(self, season_id) -> SeasonBracket:
        data = read_yaml(self._bracket_path(season_id))
        if not data:
            raise NotFoundError(f'Season {season_id!r} not found')
        return SeasonBracket.from_dict(data)

    def save(self, bracket: SeasonBracket):
        bracket.version += 1
        write_yaml(self._bracket_path(bracket.season), bracket.to_dict())

    @contextmanager
    def transaction(self, season_id):
        """Lock a season, yield its bracket, and save it if the block succeeds.

        If the block raises, nothing is written and the stored season is
        exactly as it was before.
        """
        path = self._bracket_path(season_id)
        with self._lock(path):
            bracket = self.load(season_id)
            yield bracket
            self.save(bracket)


class ContestRepository:
    """One YAML file per contest."""

    def __init__(self, data_dir, lock_timeout=10):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout
        self.contests_dir = os.path.join(data_dir, 'contests')

    def _path(self, contest_id) -> str:
        return os.path.join(self.contests_dir, f'{_check_id("Contest", contest_id)}.yaml')

    def _lock(self, path) -> FileLock:
        os.makedirs(self.contests_dir, exist_ok=True)
        return FileLock(path + '.lock', timeout=self.lock_timeout)

    def exists(self, contest_id) -> bool:
        return os.path.exists(self._path(contest_id))

    def load(self, contest_id) -> Contest:
        data = read_yaml(self._path(contest_id))
        if not data:
            raise NotFoundError(f'Contest {contest_id!r} not found')
        return Contest.from_dict(data)

    def save(self, contest: Contest):
        write_yaml(self._path(contest.id), contest.to_dict())

    def create(self, contest: Contest):
        path = self._path(contest.id)
        with self._lock(path):
            if os.path.exists(path):
                raise ValidationError(f'Contest {contest.id!r} already exists')
            self.save(contest)

    def list_contests(self, season_id: Optional[str] = None) -> List[Contest]:
        if not os.path.isdir(self.contests_dir):
            return []
        contests = []
        for filename in sorted(os.listdir(self.contests_dir)):
            if not filename.endswith('.yaml') or filename.startswith('.'):
                continue
            try:
                contest = self.load(filename[:-len('.yaml')])
            except (yaml.YAMLError, NotFoundError) as e:
                logger.warning(f'Skipping unreadable contest file {filename}: {e}')
                continue
            if season_id is None or contest.season == season_id:
                contests.append(contest)
        return sorted(contests, key=lambda c: c.created or '', reverse=True)

    def delete(self, contest_id):
        path = self._path(contest_id)
        with self._lock(path):
            if not os.path.exists(path):
                raise NotFoundError(f'Contest {contest_id!r} not found')
            os.remove(path)

    @contextmanager
    def transaction(self, contest_id):
        """Lock a contest, yield it, and save it if the block succeeds."""
        path = self._path(contest_id)
        with self._lock(path):
            contest = self.load(contest_id)
            yield contest
            self.save(contest)
