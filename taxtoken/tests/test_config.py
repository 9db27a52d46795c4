import pytest

from taxtoken.config import DAY_SECONDS, TaxSchedule, load_config, summary


def test_defaults():
    cfg = load_config(env={})
    assert cfg.forward_stipend == 2_300
    assert cfg.exchange_fee_bps == 30
    assert cfg.swap.min_out == 0 and cfg.swap.deadline_secs == 0
    assert cfg.events_path is None
    assert cfg.schedule.rates() == (10, 7, 5)


def test_env_and_overrides(tmp_path):
    env = {
        "TAXTOKEN_FORWARD_STIPEND": "5000",
        "TAXTOKEN_SWAP_DEADLINE_SECS": "0x3c",
        "TAXTOKEN_EVENTS_PATH": str(tmp_path / "ev.jsonl"),
    }
    cfg = load_config(env=env, overrides={"exchange_fee_bps": 25})
    assert cfg.forward_stipend == 5_000
    assert cfg.swap.deadline_secs == 60
    assert cfg.exchange_fee_bps == 25
    assert cfg.events_path == tmp_path / "ev.jsonl"
    assert cfg.to_dict()["events_path"].endswith("ev.jsonl")


def test_bad_env_value():
    with pytest.raises(ValueError, match="TAXTOKEN_SWAP_MIN_OUT"):
        load_config(env={"TAXTOKEN_SWAP_MIN_OUT": "lots"})


@pytest.mark.parametrize(
    "schedule",
    [
        TaxSchedule(tiers=((10, 5), (20, 7)), floor_rate=1),   # increasing rate
        TaxSchedule(tiers=((20, 9), (10, 7)), floor_rate=1),   # bounds out of order
        TaxSchedule(tiers=((10, 120),), floor_rate=1),         # > 100%
        TaxSchedule(tiers=((10, 5),), floor_rate=6),           # floor above last tier
    ],
)
def test_invalid_schedules(schedule):
    with pytest.raises(ValueError):
        load_config(env={}, overrides={"schedule": schedule})


def test_custom_schedule():
    s = TaxSchedule(tiers=((DAY_SECONDS, 20),), floor_rate=0)
    cfg = load_config(env={}, overrides={"schedule": s})
    assert cfg.schedule.rate_for_elapsed(0) == 20
    assert cfg.schedule.rate_for_elapsed(DAY_SECONDS) == 0


def test_summary_mentions_tiers():
    s = summary(load_config(env={}))
    assert "<90d:10%" in s and "<365d:7%" in s and "floor:5%" in s
