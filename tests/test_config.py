import pytest

from bamconsensus.config import ConsensusConfig


def _cfg(**kwargs) -> ConsensusConfig:
    return ConsensusConfig(bam_path="a.bam", bai_path="a.bam.bai", bed_path="a.bed", **kwargs)


def test_defaults_validate():
    cfg = _cfg().validate()
    assert cfg.skip_errors is False
    assert _cfg(error_policy="skip").validate().skip_errors is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"min_mapq": -1},
        {"threshold": -5},
        {"width": 0},
        {"threads": 0},
        {"error_policy": "retry"},
        {"contig_style": "gencode"},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        _cfg(**kwargs).validate()


def test_with_overrides_revalidates():
    cfg = _cfg().validate()
    assert cfg.with_overrides(width=80).width == 80
    with pytest.raises(ValueError):
        cfg.with_overrides(width=0)
