from wallbox_stats.entrypoints.daemon import run

run()
