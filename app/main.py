import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import typer, pandas as pd
from windfarm_eda.eda import DEFAULT_SITES, TIMEZONE, ParseError, filter_panel
from windfarm_eda.pipeline import run_pipeline
from windfarm_eda.rolling import ROLLING_CUTOFF
from windfarm_eda.summary import (site_summary, utilization_by_time_of_day, cardinality_frequency,
                                  monthly_profile, missing_share)

app = typer.Typer()
ROOT = Path(__file__).resolve().parents[1]
DATA = ROOT / 'data'
OUT = ROOT / 'outputs'
PANELS = ('analytical', 'rolling', 'difference')


def write_brief(panels, out: Path) -> Path:
    import matplotlib
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(3, 1, figsize=(8.27, 11.69))
    fig.suptitle("Wind farm EDA: rolling conditions & utilization", fontsize=14, weight='bold')
    for site, g in panels.rolling.groupby('site', observed=True):
        axes[0].plot(g['timestamp'], g['temp_seasonal'], label=f'site {site}')
        axes[1].plot(g['timestamp'], g['wind_speed_seasonal'], label=f'site {site}')
    axes[0].set_title('Seasonal (720h) temperature')
    axes[1].set_title('Seasonal (720h) wind speed')
    for ax in axes[:2]:
        ax.legend(fontsize=8)

    tod = utilization_by_time_of_day(panels.analytical)
    tod.T.plot(kind='bar', ax=axes[2])
    axes[2].set_title('Mean capacity utilization by time of day')
    axes[2].set_xlabel('')

    fig.tight_layout()
    path = out / 'eda_brief.pdf'
    fig.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path


@ app.command()
def run(measurements: Path = DATA / 'measurements.csv',
        meta: Path = DATA / 'site_meta.csv',
        out: Path = OUT,
        sites: str = ','.join(DEFAULT_SITES),
        sites_from_meta: bool = False,
        cutoff: str = ROLLING_CUTOFF,
        tz: str = TIMEZONE,
        brief: bool = True):
    """
    Build the analytical, rolling and difference panels plus summary tables and write them to OUT.
    """
    site_list = None if sites_from_meta else [s.strip() for s in sites.split(',') if s.strip()]
    try:
        panels = run_pipeline(measurements, meta, sites=site_list, cutoff=cutoff or None, tz=tz)
    except (ParseError, FileNotFoundError) as e:
        typer.echo(f"Could not load input: {e}", err=True)
        raise typer.Exit(1)

    out.mkdir(parents=True, exist_ok=True)
    for name in PANELS:
        getattr(panels, name).to_csv(out / f'{name}_panel.csv', index=False)
        typer.echo(f"Wrote {name}_panel.csv")

    tables = {
        'site_summary': site_summary(panels.analytical, panels.meta),
        'utilization_by_time_of_day': utilization_by_time_of_day(panels.analytical),
        'cardinality_frequency': cardinality_frequency(panels.analytical),
        'monthly_profile': monthly_profile(panels.analytical),
        'missing_share': missing_share(panels.analytical),
    }
    for name, table in tables.items():
        table.to_csv(out / f'{name}.csv', index=name in ('utilization_by_time_of_day', 'cardinality_frequency', 'missing_share'))
        typer.echo(f"Wrote {name}.csv")

    if brief:
        path = write_brief(panels, out)
        typer.echo(f"Wrote {path.name}")


@ app.command()
def panel(name: str = 'analytical', site_id: str = None, start: str = None, end: str = None, out: Path = OUT,
          tz: str = TIMEZONE):
    """
    Print a written panel filtered by site and time. Naive --start/--end are read in `tz`.
    """
    if name not in PANELS:
        typer.echo(f"Unknown panel {name!r}, expected one of {', '.join(PANELS)}", err=True)
        raise typer.Exit(1)
    fn = out / f'{name}_panel.csv'
    df = pd.read_csv(fn, dtype={'site': str})
    df['timestamp'] = pd.to_datetime(df['timestamp'], utc=True, format='ISO8601').dt.tz_convert(tz)
    df = filter_panel(df, site=site_id, start=start, end=end)
    typer.echo(df.to_csv(index=False))


if __name__ == "__main__":
    app()
