"""GTFS data loader for ingesting the static schedule into SQLite."""

import csv
import io
import logging
import zipfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import aiosqlite

from mnr_mcp.data.gtfs_time import safe_gtfs_time_to_seconds

logger = logging.getLogger(__name__)

# Schema definitions
SCHEMA_SQL = """
-- routes
CREATE TABLE routes (
    route_id TEXT PRIMARY KEY,
    route_short_name TEXT,
    route_long_name TEXT,
    route_type INTEGER,
    route_color TEXT,
    route_text_color TEXT
);

-- stops
CREATE TABLE stops (
    stop_id TEXT PRIMARY KEY,
    stop_code TEXT,
    stop_name TEXT NOT NULL,
    stop_lat REAL,
    stop_lon REAL,
    wheelchair_boarding INTEGER
);

-- calendar_dates
CREATE TABLE calendar_dates (
    service_id TEXT,
    date TEXT,
    exception_type INTEGER,
    PRIMARY KEY (service_id, date)
);

-- trips
CREATE TABLE trips (
    trip_id TEXT PRIMARY KEY,
    route_id TEXT NOT NULL,
    service_id TEXT NOT NULL,
    trip_headsign TEXT,
    trip_short_name TEXT,
    direction_id INTEGER,
    wheelchair_accessible INTEGER,
    peak_offpeak INTEGER
);

-- stop_times
CREATE TABLE stop_times (
    trip_id TEXT NOT NULL,
    arrival_time TEXT,
    departure_time TEXT,
    stop_id TEXT NOT NULL,
    stop_sequence INTEGER NOT NULL,
    track TEXT,
    arrival_timestamp INTEGER,
    departure_timestamp INTEGER,
    PRIMARY KEY (trip_id, stop_sequence)
);
"""

INDEX_SQL = """
CREATE INDEX idx_stops_name ON stops(stop_name);
CREATE INDEX idx_calendar_dates_date ON calendar_dates(date);
CREATE INDEX idx_trips_route ON trips(route_id);
CREATE INDEX idx_trips_service ON trips(service_id);
CREATE INDEX idx_stop_times_stop ON stop_times(stop_id);
CREATE INDEX idx_stop_times_stop_departure ON stop_times(stop_id, departure_timestamp);
"""

# Table definitions: table_name -> (csv_filename, columns read from the CSV)
TABLE_DEFINITIONS: dict[str, tuple[str, list[str]]] = {
    "routes": (
        "routes.txt",
        [
            "route_id",
            "route_short_name",
            "route_long_name",
            "route_type",
            "route_color",
            "route_text_color",
        ],
    ),
    "stops": (
        "stops.txt",
        ["stop_id", "stop_code", "stop_name", "stop_lat", "stop_lon", "wheelchair_boarding"],
    ),
    "calendar_dates": (
        "calendar_dates.txt",
        ["service_id", "date", "exception_type"],
    ),
    "trips": (
        "trips.txt",
        [
            "trip_id",
            "route_id",
            "service_id",
            "trip_headsign",
            "trip_short_name",
            "direction_id",
            "wheelchair_accessible",
            "peak_offpeak",
        ],
    ),
    "stop_times": (
        "stop_times.txt",
        ["trip_id", "arrival_time", "departure_time", "stop_id", "stop_sequence", "track"],
    ),
}

# Columns computed at load time rather than read from the CSV
DERIVED_COLUMNS: dict[str, list[str]] = {
    "stop_times": ["arrival_timestamp", "departure_timestamp"],
}

# Columns that must be present in the CSV header.
# Anything else is an optional extension and loads as NULL when absent.
HEADER_COLUMNS: dict[str, list[str]] = {
    "routes": ["route_id"],
    "stops": ["stop_id", "stop_name"],
    "calendar_dates": ["service_id", "date", "exception_type"],
    "trips": ["trip_id", "route_id", "service_id"],
    "stop_times": ["trip_id", "stop_id", "stop_sequence"],
}

# Columns that must be present for a row to be inserted.
REQUIRED_COLUMNS: dict[str, list[str]] = {
    "routes": ["route_id"],
    "stops": ["stop_id", "stop_name"],
    "calendar_dates": ["service_id", "date"],
    "trips": ["trip_id", "route_id", "service_id"],
    "stop_times": ["trip_id", "stop_id", "stop_sequence"],
}

# Files without which the store cannot answer schedule queries
REQUIRED_FILES = ("stops.txt", "trips.txt", "stop_times.txt", "calendar_dates.txt")

# Chunk size for bulk inserts
CHUNK_SIZE = 10000


class GTFSLoader:
    """Loader for ingesting GTFS data into SQLite."""

    def __init__(self, db_path: Path):
        """Initialize the loader.

        Args:
            db_path: Path where the SQLite database will be created.
        """
        self.db_path = Path(db_path)

    async def ingest(self, gtfs_path: Path) -> dict[str, int]:
        """Ingest GTFS data from a directory or ZIP file into SQLite.

        Uses atomic swap: loads into temp DB, then replaces the target DB.
        Readers holding an open connection keep reading the old file.

        Args:
            gtfs_path: Path to GTFS directory or ZIP file.

        Returns:
            Dictionary with row counts per table.

        Raises:
            FileNotFoundError: If GTFS path doesn't exist.
            ValueError: If required GTFS files are missing.
        """
        gtfs_path = Path(gtfs_path)
        if not gtfs_path.exists():
            raise FileNotFoundError(f"GTFS path not found: {gtfs_path}")

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        temp_db = self.db_path.with_suffix(".tmp.db")

        try:
            # Remove temp db if it exists from a previous failed run
            temp_db.unlink(missing_ok=True)

            async with aiosqlite.connect(temp_db) as db:
                # Performance optimizations for bulk loading
                await db.execute("PRAGMA journal_mode=OFF")
                await db.execute("PRAGMA synchronous=OFF")
                await db.execute("PRAGMA cache_size=10000")

                await self._create_schema(db)
                row_counts = await self._load_all_tables(db, gtfs_path)
                await self._create_indexes(db)
                await self._verify_integrity(db)

            # atomic swap
            temp_db.replace(self.db_path)

            logger.info(f"GTFS ingestion complete: {self.db_path}")
            return row_counts

        except Exception:
            temp_db.unlink(missing_ok=True)
            raise

    async def _create_schema(self, db: aiosqlite.Connection) -> None:
        """Create database schema (tables without indexes)."""
        await db.executescript(SCHEMA_SQL)
        await db.commit()

    async def _create_indexes(self, db: aiosqlite.Connection) -> None:
        """Create indexes after bulk loading."""
        logger.info("Creating indexes...")
        await db.executescript(INDEX_SQL)
        await db.commit()

    async def _load_all_tables(self, db: aiosqlite.Connection, gtfs_path: Path) -> dict[str, int]:
        """Load all GTFS tables from directory or ZIP."""
        row_counts: dict[str, int] = {}

        if gtfs_path.is_file() and gtfs_path.suffix == ".zip":
            with zipfile.ZipFile(gtfs_path, "r") as zf:
                self._check_required_files(zf.namelist())
                for table_name, (csv_filename, _) in TABLE_DEFINITIONS.items():
                    if csv_filename in zf.namelist():
                        with zf.open(csv_filename) as f:
                            text_file = io.TextIOWrapper(f, encoding="utf-8-sig")
                            row_counts[table_name] = await self._load_table(
                                db, table_name, csv.reader(text_file), csv_filename
                            )
                    else:
                        logger.warning(f"Optional file {csv_filename} not found in ZIP")
                        row_counts[table_name] = 0
        else:
            self._check_required_files([p.name for p in gtfs_path.iterdir()])
            for table_name, (csv_filename, _) in TABLE_DEFINITIONS.items():
                csv_path = gtfs_path / csv_filename
                if csv_path.exists():
                    with open(csv_path, encoding="utf-8-sig", newline="") as f:
                        row_counts[table_name] = await self._load_table(
                            db, table_name, csv.reader(f), csv_filename
                        )
                else:
                    logger.warning(f"Optional file {csv_filename} not found")
                    row_counts[table_name] = 0

        return row_counts

    def _check_required_files(self, names: Iterable[str]) -> None:
        """Raise if a file the schedule engine depends on is absent."""
        present = set(names)
        missing = [name for name in REQUIRED_FILES if name not in present]
        if missing:
            raise ValueError(f"Missing required GTFS files: {', '.join(missing)}")

    async def _load_table(
        self,
        db: aiosqlite.Connection,
        table_name: str,
        reader: Iterator[list[str]],
        filename: str,
    ) -> int:
        """Load one CSV reader into a table."""
        logger.info(f"Loading {table_name} from {filename}...")

        _, columns = TABLE_DEFINITIONS[table_name]
        all_columns = columns + DERIVED_COLUMNS.get(table_name, [])
        placeholders = ",".join(["?"] * len(all_columns))
        insert_sql = (
            f"INSERT OR REPLACE INTO {table_name} ({','.join(all_columns)}) VALUES ({placeholders})"
        )

        total_rows = 0
        skipped_rows = 0
        chunk: list[tuple[Any, ...]] = []
        required = REQUIRED_COLUMNS.get(table_name, [])
        header_index = self._build_header_index(reader, table_name, filename)

        for row in reader:
            row_dict = self._row_from_index(row, header_index)
            if not self._has_required_values(row_dict, required):
                skipped_rows += 1
                continue
            values = [self._convert_value(row_dict.get(col)) for col in columns]
            if table_name == "stop_times":
                values.extend(self._derive_timestamps(row_dict))
            chunk.append(tuple(values))

            if len(chunk) >= CHUNK_SIZE:
                await db.executemany(insert_sql, chunk)
                total_rows += len(chunk)
                chunk = []

        if chunk:
            await db.executemany(insert_sql, chunk)
            total_rows += len(chunk)

        await db.commit()
        logger.info(
            f"  Loaded {total_rows:,} rows into {table_name}"
            + (f" (skipped {skipped_rows:,} invalid)" if skipped_rows else "")
        )
        return total_rows

    def _derive_timestamps(self, row: dict[str, str]) -> list[int | None]:
        """Seconds since midnight for arrival and departure.

        A stop time missing one of the two clock values borrows the other.
        """
        arrival = safe_gtfs_time_to_seconds(row.get("arrival_time"))
        departure = safe_gtfs_time_to_seconds(row.get("departure_time"))
        if arrival is None:
            arrival = departure
        if departure is None:
            departure = arrival
        return [arrival, departure]

    def _convert_value(self, value: str | None) -> Any:
        """Convert CSV value to appropriate Python type."""
        if value is None or value == "":
            return None
        return value.strip()

    def _has_required_values(self, row: dict[str, str], required: list[str]) -> bool:
        """Return True if all required columns have non-empty values."""
        for col in required:
            value = row.get(col)
            if value is None or value.strip() == "":
                return False
        return True

    def _build_header_index(
        self, reader: Iterator[list[str]], table_name: str, filename: str
    ) -> dict[str, int]:
        """Build header index mapping for a CSV reader."""
        header = next(reader, None)
        if header is None:
            raise ValueError(f"{filename} is empty")
        _, columns = TABLE_DEFINITIONS[table_name]
        expected = set(columns)
        header_index: dict[str, int] = {}
        for idx, name in enumerate(header):
            cleaned = name.strip()
            if cleaned in expected and cleaned not in header_index:
                header_index[cleaned] = idx
        missing = [col for col in HEADER_COLUMNS[table_name] if col not in header_index]
        if missing:
            raise ValueError(f"{filename} missing columns: {', '.join(missing)}")
        return header_index

    def _row_from_index(self, row: list[str], header_index: dict[str, int]) -> dict[str, str]:
        """Map a CSV row list to a dict by header index."""
        row_dict: dict[str, str] = {}
        for col, idx in header_index.items():
            row_dict[col] = row[idx] if idx < len(row) else ""
        return row_dict

    async def _verify_integrity(self, db: aiosqlite.Connection) -> None:
        """Verify database integrity after loading."""
        logger.info("Verifying database integrity...")

        for table_name in ("stops", "trips", "stop_times", "calendar_dates"):
            async with db.execute(f"SELECT COUNT(*) FROM {table_name}") as cursor:
                row = await cursor.fetchone()
                if row is None or row[0] == 0:
                    raise ValueError(f"No {table_name} loaded - check GTFS data")

        logger.info("Database integrity verified")


async def get_table_counts(db_path: Path) -> dict[str, int]:
    """Get row counts for all tables in the database.

    Args:
        db_path: Path to the SQLite database.

    Returns:
        Dictionary mapping table names to row counts.
    """
    counts: dict[str, int] = {}
    async with aiosqlite.connect(db_path) as db:
        for table_name in TABLE_DEFINITIONS:
            async with db.execute(f"SELECT COUNT(*) FROM {table_name}") as cursor:
                row = await cursor.fetchone()
                counts[table_name] = row[0] if row else 0
    return counts
