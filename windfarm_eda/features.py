import numpy as np
import pandas as pd
import structlog

logger = structlog.get_logger()

MIN_WIND_SPEED = 0.0

# display order, not clock order
TIME_OF_DAY = pd.CategoricalDtype(['4AM-9AM', '10AM-3PM', '4PM-9PM', '10PM-3AM'], ordered=True)
HOUR_TO_TIME_OF_DAY = {
    **{h: '10PM-3AM' for h in (22, 23, 0, 1, 2, 3)},
    **{h: '4AM-9AM' for h in range(4, 10)},
    **{h: '10AM-3PM' for h in range(10, 16)},
    **{h: '4PM-9PM' for h in range(16, 22)},
}

# 45 degree half-open bins from 0: [0,45) -> E ... [315,360) -> SE
CARDINALITY = pd.CategoricalDtype(['E', 'NE', 'N', 'NW', 'W', 'SW', 'S', 'SE'], ordered=True)
DIRECTION_BINS = np.arange(0, 361, 45)


def add_date_features(df: pd.DataFrame) -> pd.DataFrame:
    ts = df['timestamp']
    df['year'] = ts.dt.year
    df['month'] = ts.dt.month
    df['day'] = ts.dt.day
    df['hour'] = ts.dt.hour
    return df


def assign_time_of_day(hour: pd.Series) -> pd.Series:
    return hour.map(HOUR_TO_TIME_OF_DAY).astype(TIME_OF_DAY)


def assign_cardinality(direction: pd.Series) -> pd.Series:
    """Directions outside [0, 360) get no bin."""
    cut = pd.cut(direction, bins=DIRECTION_BINS, right=False, labels=CARDINALITY.categories)
    return cut.astype(CARDINALITY)


def add_wind_presence(df: pd.DataFrame, min_wind_speed: float = MIN_WIND_SPEED) -> pd.DataFrame:
    """
    wind_present is True only when a valid direction and a speed above
    `min_wind_speed` were both recorded. Direction is blanked everywhere else
    so a stale vane reading never gets a cardinality.
    """
    valid_direction = df['direction'].ge(0) & df['direction'].lt(360)
    df['wind_present'] = valid_direction & df['wind_speed'].notna() & df['wind_speed'].gt(min_wind_speed)
    df['direction'] = df['direction'].where(df['wind_present'])
    return df


def add_capacity_utilization(df: pd.DataFrame, meta_df: pd.DataFrame) -> pd.DataFrame:
    capacity = meta_df.set_index('site')['capacity']
    capacity = capacity.where(capacity > 0)
    df['capacity'] = df['site'].astype(str).map(capacity).astype('float64')

    missing_sites = set(df['site'].astype(str)) - set(capacity.dropna().index)
    if missing_sites:
        logger.warning("sites_without_capacity", sites=sorted(missing_sites))

    df['cap_util'] = (df['power'].clip(lower=0) / df['capacity']).round(2)
    return df


def enrich(grid_df: pd.DataFrame, meta_df: pd.DataFrame, min_wind_speed: float = MIN_WIND_SPEED) -> pd.DataFrame:
    df = grid_df.copy()
    df = add_date_features(df)
    df = add_wind_presence(df, min_wind_speed=min_wind_speed)
    df = add_capacity_utilization(df, meta_df)
    df['time_of_day'] = assign_time_of_day(df['hour'])
    df['cardinality'] = assign_cardinality(df['direction'])
    logger.info("panel_enriched", rows=len(df), wind_present=int(df['wind_present'].sum()),
                cap_util_defined=int(df['cap_util'].notna().sum()))
    return df
