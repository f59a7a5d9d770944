"""CLI script to load country names into the catalog DB.
Usage: python scripts/import_countries.py countries.txt
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `mystamps` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from mystamps.database import engine, create_db_and_tables
from mystamps import services


def read_names(path: pathlib.Path):
    """Return the non-empty, non-comment lines of `path`, trimmed."""
    names = []
    for line in path.read_text(encoding='utf-8').splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            names.append(line)
    return names


def main(path: pathlib.Path):
    """Add every country listed in `path`, one name per line.

    Names already present are reported and skipped.
    """
    if not path.exists():
        print(f'File not found: {path}')
        return
    create_db_and_tables()
    added = 0
    skipped = 0
    with Session(engine) as session:
        svc = services.CountryService(session)
        for name in read_names(path):
            try:
                svc.add(name)
                added += 1
            except ValueError as e:
                skipped += 1
                print(f'Skipped {name!r}: {e}')
    print(f'Added countries: {added}, skipped {skipped}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('path', type=pathlib.Path, help='Text file with one country name per line')
    args = parser.parse_args()
    main(args.path)
