"""Shared fixtures: a small Metro-North-style GTFS feed and its SQLite store.

Stops: A=Grand Central, B=Harlem-125 St, C=Stamford, D=New Haven.

    T1 (WKDY, train 5401): C#1 00:10:00, A#3 00:16:40 (1000s), B#7 00:31:40 (1900s)
    T2 (WKDY, train 5403): A#1 00:08:20 (500s), B#4 00:20:00 (1200s)
    T3 (SAT,  train 6402): B#1 00:05:00, A#5 00:25:00
    T4 (SAT,  train 6405): A#1 00:30:00, B#2 00:45:00
    T5 (WKDY, train 5405): A#1 00:40:00, C#2 00:50:00
    T6 (WKDY, train 9999, route RX missing): C#1 01:00:00, D#2 01:30:00

Calendar: WKDY on 2024-03-04; WKDY then SAT on 2024-03-05; WKDY removed and
SAT added on 2024-03-06; SAT on 2024-03-09.
"""

from pathlib import Path

import pytest

from mnr_mcp.data.config import MNRConfig
from mnr_mcp.data.gtfs_loader import GTFSLoader
from mnr_mcp.data.store import ScheduleStore


@pytest.fixture
def sample_gtfs_dir(tmp_path: Path) -> Path:
    """Create a sample GTFS directory with minimal valid data."""
    gtfs_dir = tmp_path / "gtfs"
    gtfs_dir.mkdir()

    # agency.txt is not loaded but real feeds ship it
    (gtfs_dir / "agency.txt").write_text(
        "agency_id,agency_name,agency_url,agency_timezone\n"
        "1,Metro-North Railroad,http://www.mta.info/mnr,America/New_York\n"
    )

    (gtfs_dir / "routes.txt").write_text(
        "route_id,agency_id,route_short_name,route_long_name,route_type,route_color,route_text_color\n"
        "R1,1,,Hudson,2,009B3A,FFFFFF\n"
        "R2,1,,New Haven,2,EE0034,FFFFFF\n"
    )

    (gtfs_dir / "stops.txt").write_text(
        "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon,wheelchair_boarding\n"
        "A,GCT,Grand Central,,40.752998,-73.977056,1\n"
        "B,125,Harlem-125 St,,40.805157,-73.939149,1\n"
        "C,STM,Stamford,,41.046937,-73.542852,1\n"
        "D,NHV,New Haven,,41.296652,-72.926605,1\n"
    )

    (gtfs_dir / "calendar_dates.txt").write_text(
        "service_id,date,exception_type\n"
        "WKDY,20240304,1\n"
        "WKDY,20240305,1\n"
        "SAT,20240305,1\n"
        "WKDY,20240306,2\n"
        "SAT,20240306,1\n"
        "SAT,20240309,1\n"
    )

    (gtfs_dir / "trips.txt").write_text(
        "route_id,service_id,trip_id,trip_headsign,trip_short_name,direction_id,"
        "shape_id,wheelchair_accessible,peak_offpeak\n"
        "R1,WKDY,T1,Poughkeepsie,5401,0,,1,1\n"
        "R1,WKDY,T2,Croton-Harmon,5403,0,,1,0\n"
        "R1,SAT,T3,Grand Central,6402,1,,2,0\n"
        "R1,SAT,T4,Croton-Harmon,6405,0,,1,0\n"
        "R2,WKDY,T5,Stamford,5405,0,,0,0\n"
        "RX,WKDY,T6,New Haven,9999,0,,1,0\n"
    )

    (gtfs_dir / "stop_times.txt").write_text(
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence,pickup_type,drop_off_type,track\n"
        "T1,00:10:00,00:10:00,C,1,0,0,\n"
        "T1,00:16:40,00:16:40,A,3,0,0,42\n"
        "T1,00:31:40,00:31:40,B,7,0,0,2\n"
        "T2,00:08:20,00:08:20,A,1,0,0,39\n"
        "T2,00:20:00,00:20:00,B,4,0,0,1\n"
        "T3,00:05:00,00:05:00,B,1,0,0,3\n"
        "T3,00:25:00,00:25:00,A,5,0,0,18\n"
        "T4,00:30:00,00:30:00,A,1,0,0,27\n"
        "T4,00:45:00,00:45:00,B,2,0,0,1\n"
        "T5,00:40:00,00:40:00,A,1,0,0,21\n"
        "T5,00:50:00,00:50:00,C,2,0,0,4\n"
        "T6,01:00:00,01:00:00,C,1,0,0,\n"
        "T6,01:30:00,01:30:00,D,2,0,0,\n"
    )

    return gtfs_dir


@pytest.fixture
async def db_path(sample_gtfs_dir: Path, tmp_path: Path) -> Path:
    """Create a test database from sample GTFS data."""
    db_file = tmp_path / "test.db"
    loader = GTFSLoader(db_file)
    await loader.ingest(sample_gtfs_dir)
    return db_file


@pytest.fixture
def store(db_path: Path) -> ScheduleStore:
    """Store backed by the sample database."""
    return ScheduleStore(db_path)


@pytest.fixture
def config() -> MNRConfig:
    """Test config with a fake realtime URL and the default timezone."""
    return MNRConfig(
        MNR_API_KEY="test_api_key",
        MNR_REALTIME_URL="https://example.com/gtfs-mnr",
        MNR_POLL_INTERVAL=60,
        MNR_FEED_TIMEOUT=5,
        MNR_TIMEZONE="America/New_York",
        MNR_MAX_CONCURRENCY=4,
    )
