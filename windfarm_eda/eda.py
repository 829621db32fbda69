import pandas as pd
import structlog
from pathlib import Path

logger = structlog.get_logger()

DEFAULT_SITES = ("1", "2", "3", "4")
TIMEZONE = "UTC"

MEASUREMENT_COLUMNS = {
    'Site': 'site',
    'Timestamp': 'timestamp',
    'Power': 'power',
    'Temperature': 'temp',
    'NacelleAngle': 'angle',
    'RotorSpeed': 'rotor_speed',
    'WindDirection': 'direction',
    'WindSpeed': 'wind_speed',
}
META_COLUMNS = {
    'id': 'site',
    'turbines': 'turbine_count',
    'capacity': 'capacity',
    'lat': 'latitude',
    'lon': 'longitude',
    'state': 'jurisdiction',
    'country': 'country',
}

FIELDS = ['power', 'temp', 'angle', 'rotor_speed', 'direction', 'wind_speed']
META_FIELDS = ['turbine_count', 'capacity', 'latitude', 'longitude', 'jurisdiction', 'country']


class ParseError(ValueError):
    """Raised when an input file cannot be turned into a typed table."""

    def __init__(self, message: str, path=None, column=None):
        self.path = str(path) if path is not None else None
        self.column = column
        super().__init__(message)


def _read_table(path, columns: dict) -> pd.DataFrame:
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"No such file: {p}")
    # everything as text; numeric fields are converted once columns are known
    try:
        df = pd.read_csv(p, dtype=str)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ParseError(f"Could not read {p}: {e}", path=p) from e
    df.columns = df.columns.str.strip()
    return df.rename(columns=columns)


def _require(df: pd.DataFrame, required, path):
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ParseError(f"{Path(path).name} is missing columns {missing}", path=path, column=missing[0])


def _to_numeric(df: pd.DataFrame, cols, path):
    """Convert text columns to numbers; any non-empty cell that is not a number is fatal."""
    for col in cols:
        raw = df[col].str.strip()
        raw = raw.where(raw != '')
        num = pd.to_numeric(raw, errors='coerce')
        bad = num.isna() & raw.notna()
        if bad.any():
            sample = raw[bad].iloc[0]
            raise ParseError(f"{Path(path).name}: {bad.sum()} non-numeric values in column '{col}' (e.g. {sample!r})",
                             path=path, column=col)
        df[col] = num.astype('float64')
    return df


def load_measurements(path, columns: dict = None, tz: str = TIMEZONE) -> pd.DataFrame:
    """
    Load the hourly measurement file and rename source columns to
    site, timestamp, power, temp, angle, rotor_speed, direction, wind_speed.
    Timestamps are read as UTC, floored to the hour and converted to `tz`.
    """
    df = _read_table(path, MEASUREMENT_COLUMNS if columns is None else columns)
    _require(df, ['site', 'timestamp'] + FIELDS, path)

    raw_ts = df['timestamp']
    ts = pd.to_datetime(raw_ts, utc=True, errors='coerce', format='ISO8601')
    bad = ts.isna() & raw_ts.notna()
    if bad.any():
        sample = raw_ts[bad].iloc[0]
        raise ParseError(f"{Path(path).name}: {bad.sum()} unparseable timestamps in column 'timestamp' (e.g. {sample!r})",
                         path=path, column='timestamp')
    if ts.isna().any():
        raise ParseError(f"{Path(path).name}: {ts.isna().sum()} empty timestamps in column 'timestamp'",
                         path=path, column='timestamp')
    df['timestamp'] = ts.dt.floor('h').dt.tz_convert(tz)

    df = _to_numeric(df, FIELDS, path)
    df['site'] = df['site'].str.strip()

    logger.info("measurements_loaded", path=str(path), rows=len(df), sites=sorted(df['site'].dropna().unique().tolist()))
    return df[['site', 'timestamp'] + FIELDS]


def load_site_meta(path, columns: dict = None) -> pd.DataFrame:
    df = _read_table(path, META_COLUMNS if columns is None else columns)
    _require(df, ['site'] + META_FIELDS, path)
    df['site'] = df['site'].str.strip()
    df = _to_numeric(df, ['turbine_count', 'capacity', 'latitude', 'longitude'], path)
    if df['site'].duplicated().any():
        logger.warning("duplicate_site_meta", path=str(path), sites=df.loc[df['site'].duplicated(), 'site'].tolist())
        df = df.drop_duplicates(subset=['site'], keep='last')
    return df[['site'] + META_FIELDS].reset_index(drop=True)


def normalize_grid(ops_df: pd.DataFrame, sites=DEFAULT_SITES, tz: str = TIMEZONE) -> pd.DataFrame:
    """
    Expand measurements onto every (site, hour) between the first and last
    timestamp seen across all sites. Hours without a reading keep NaN fields.
    Duplicate (site, timestamp) readings keep the last row in file order.
    """
    sites = [str(s) for s in sites]
    site_type = pd.CategoricalDtype(sites)

    dups = ops_df.duplicated(subset=['site', 'timestamp'], keep=False)
    if dups.any():
        logger.warning("duplicate_readings", rows=int(dups.sum()), policy="keep_last")
    df = ops_df.drop_duplicates(subset=['site', 'timestamp'], keep='last')

    unknown = set(df['site'].dropna()) - set(sites)
    if unknown:
        logger.warning("unknown_sites_dropped", sites=sorted(unknown),
                       rows=int(df['site'].isin(unknown).sum()))
    no_site = int(df['site'].isna().sum())
    if no_site:
        logger.warning("rows_without_site_dropped", rows=no_site)

    if df.empty or df['timestamp'].isna().all():
        empty = pd.DataFrame({'site': pd.Series([], dtype=site_type),
                              'timestamp': pd.Series([], dtype=f'datetime64[ns, {tz}]')})
        for col in FIELDS:
            empty[col] = pd.Series([], dtype='float64')
        return empty

    hours = pd.date_range(df['timestamp'].min(), df['timestamp'].max(), freq='h').tz_convert(tz)
    grid = pd.MultiIndex.from_product([sites, hours], names=['site', 'timestamp']).to_frame(index=False)
    grid['timestamp'] = grid['timestamp'].astype(df['timestamp'].dtype)

    res = grid.merge(df[['site', 'timestamp'] + FIELDS], on=['site', 'timestamp'], how='left')
    res['site'] = res['site'].astype(site_type)
    res = res.sort_values(['site', 'timestamp']).reset_index(drop=True)
    logger.info("grid_normalized", sites=len(sites), hours=len(hours), rows=len(res),
                filled=int(res[FIELDS].isna().all(axis=1).sum()))
    return res


def filter_panel(df: pd.DataFrame, site=None, start=None, end=None) -> pd.DataFrame:
    """Rows for one site (or a list of sites) between start and end inclusive."""
    mask = pd.Series(True, index=df.index)
    if site is not None:
        sites = [str(s) for s in site] if isinstance(site, (list, tuple, set)) else [str(site)]
        mask &= df['site'].astype(str).isin(sites)
    ts = df['timestamp']
    for bound, op in ((start, 'ge'), (end, 'le')):
        if bound is None:
            continue
        b = pd.Timestamp(bound)
        if ts.dt.tz is not None:
            b = b.tz_localize(ts.dt.tz) if b.tzinfo is None else b.tz_convert(ts.dt.tz)
        mask &= getattr(ts, op)(b)
    return df[mask].copy()
