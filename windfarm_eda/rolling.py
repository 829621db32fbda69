import numpy as np
import pandas as pd
import structlog
from sklearn.preprocessing import MaxAbsScaler

logger = structlog.get_logger()

DAILY_WINDOW = 24
SEASONAL_WINDOW = 720
# readings before this date are unreliable
ROLLING_CUTOFF = "2019-01-01"

DIFF_FIELDS = ['power', 'temp', 'angle', 'direction', 'wind_speed', 'cap_util']


def _trailing(s: pd.Series, window: int, how: str) -> pd.Series:
    """
    Right-aligned window over `window` rows. Missing samples are skipped,
    but the first window-1 rows and all-missing windows stay NaN.
    """
    out = getattr(s.rolling(window, min_periods=1), how)()
    out[np.arange(len(s)) < window - 1] = np.nan
    return out


def _max_abs_scale(s: pd.Series) -> pd.Series:
    if s.notna().sum() == 0:
        return s
    scaled = MaxAbsScaler().fit_transform(s.to_numpy().reshape(-1, 1)).ravel()
    return pd.Series(scaled, index=s.index)


def _site_rolling(g: pd.DataFrame, daily: int, seasonal: int) -> pd.DataFrame:
    g = g.sort_values('timestamp')
    out = g[['site', 'timestamp']].copy()
    out['temp_daily'] = _trailing(g['temp'], daily, 'mean')
    out['wind_speed_daily'] = _trailing(g['wind_speed'], daily, 'mean')
    out['temp_seasonal'] = _trailing(g['temp'], seasonal, 'mean')
    out['wind_speed_seasonal'] = _trailing(g['wind_speed'], seasonal, 'mean')
    out['power_daily'] = _max_abs_scale(_trailing(g['power'], daily, 'sum'))
    out['speed_daily'] = _max_abs_scale(_trailing(g['rotor_speed'], daily, 'mean'))
    return out


def rolling_panel(df: pd.DataFrame, cutoff=ROLLING_CUTOFF, daily: int = DAILY_WINDOW,
                  seasonal: int = SEASONAL_WINDOW) -> pd.DataFrame:
    """
    Daily and seasonal trailing averages per site, from `cutoff` on.
    power_daily and speed_daily are divided by their own max absolute value
    within the site so the sites share a scale.
    """
    d = df
    if cutoff is not None:
        c = pd.Timestamp(cutoff)
        tz = df['timestamp'].dt.tz
        if tz is not None:
            c = c.tz_localize(tz) if c.tzinfo is None else c.tz_convert(tz)
        d = df[df['timestamp'] >= c]

    parts = [_site_rolling(g, daily, seasonal) for _, g in d.groupby('site', observed=True, sort=True)]
    if not parts:
        cols = ['temp_daily', 'wind_speed_daily', 'temp_seasonal', 'wind_speed_seasonal', 'power_daily', 'speed_daily']
        return d[['site', 'timestamp']].assign(**{c: pd.Series(dtype='float64') for c in cols}).reset_index(drop=True)

    res = pd.concat(parts, ignore_index=True)
    logger.info("rolling_panel_built", cutoff=str(cutoff), rows=len(res), sites=len(parts))
    return res


def difference_panel(df: pd.DataFrame, fields=DIFF_FIELDS) -> pd.DataFrame:
    """Each field minus the previous reading of the same site; first row per site is NaN."""
    res = df.sort_values(['site', 'timestamp']).reset_index(drop=True)
    fields = [f for f in fields if f in res.columns]
    res[fields] = res.groupby('site', observed=True)[fields].diff()
    return res
