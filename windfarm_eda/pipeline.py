from typing import NamedTuple

import pandas as pd
import structlog

from windfarm_eda.eda import DEFAULT_SITES, TIMEZONE, load_measurements, load_site_meta, normalize_grid
from windfarm_eda.features import MIN_WIND_SPEED, enrich
from windfarm_eda.rolling import ROLLING_CUTOFF, difference_panel, rolling_panel

logger = structlog.get_logger()


class Panels(NamedTuple):
    meta: pd.DataFrame
    analytical: pd.DataFrame
    rolling: pd.DataFrame
    difference: pd.DataFrame


def run_pipeline(measurements_path, meta_path, sites=DEFAULT_SITES, cutoff=ROLLING_CUTOFF,
                 tz: str = TIMEZONE, min_wind_speed: float = MIN_WIND_SPEED,
                 measurement_columns: dict = None, meta_columns: dict = None) -> Panels:
    """
    Read both files and derive every panel from scratch.
    Pass sites=None to take the site list from the metadata file.
    """
    ops = load_measurements(measurements_path, columns=measurement_columns, tz=tz)
    meta = load_site_meta(meta_path, columns=meta_columns)
    if sites is None:
        sites = meta['site'].tolist()

    grid = normalize_grid(ops, sites=sites, tz=tz)
    panel = enrich(grid, meta, min_wind_speed=min_wind_speed)
    rolled = rolling_panel(panel, cutoff=cutoff)
    diffed = difference_panel(panel)
    logger.info("pipeline_finished", analytical=len(panel), rolling=len(rolled), difference=len(diffed))
    return Panels(meta, panel, rolled, diffed)
