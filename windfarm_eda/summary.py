import pandas as pd

from windfarm_eda.eda import FIELDS


def site_summary(df: pd.DataFrame, meta_df: pd.DataFrame = None) -> pd.DataFrame:
    g = df.groupby('site', observed=True)
    res = pd.DataFrame({
        'hours': g.size(),
        'hours_reported': g['power'].count(),
        'power_mean': g['power'].mean(),
        'power_max': g['power'].max(),
        'cap_util_mean': g['cap_util'].mean(),
        'wind_speed_mean': g['wind_speed'].mean(),
        'wind_present_share': g['wind_present'].mean(),
    }).reset_index()
    res['site'] = res['site'].astype(str)
    if meta_df is not None:
        res = res.merge(meta_df[['site', 'turbine_count', 'capacity']], on='site', how='left')
    return res


def utilization_by_time_of_day(df: pd.DataFrame) -> pd.DataFrame:
    """Mean cap_util per site, one column per time-of-day bucket."""
    return df.groupby(['site', 'time_of_day'], observed=False)['cap_util'].mean().unstack()


def cardinality_frequency(df: pd.DataFrame) -> pd.DataFrame:
    """Share of wind-present hours falling in each compass bucket, per site."""
    windy = df[df['wind_present']]
    counts = windy.groupby(['site', 'cardinality'], observed=False).size().unstack(fill_value=0)
    return counts.div(counts.sum(axis=1).replace(0, float('nan')), axis=0)


def monthly_profile(df: pd.DataFrame) -> pd.DataFrame:
    return (
        df.groupby(['site', 'year', 'month'], observed=True)[['power', 'temp', 'wind_speed', 'cap_util']]
        .mean()
        .reset_index()
    )


def missing_share(df: pd.DataFrame) -> pd.DataFrame:
    return df[FIELDS].isna().groupby(df['site'], observed=True).mean()
