from habitat_operator.config import Settings


def test_defaults(monkeypatch):
    for name in [
        "HABITAT_NAMESPACE",
        "HABITAT_WORKLOAD_NAMESPACE",
        "HABITAT_RESYNC_PERIOD",
        "HABITAT_LOG_LEVEL",
        "KUBECONFIG",
    ]:
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.namespace == ""
    assert settings.workload_namespace == "default"
    assert settings.resync_period == 60.0
    assert settings.log_level == "INFO"
    assert settings.kubeconfig is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HABITAT_NAMESPACE", "habitat")
    monkeypatch.setenv("HABITAT_WORKLOAD_NAMESPACE", "workloads")
    monkeypatch.setenv("HABITAT_RESYNC_PERIOD", "30")
    monkeypatch.setenv("KUBECONFIG", "/tmp/kubeconfig")

    settings = Settings()

    assert settings.namespace == "habitat"
    assert settings.workload_namespace == "workloads"
    assert settings.resync_period == 30.0
    assert settings.kubeconfig == "/tmp/kubeconfig"


def test_unparseable_resync_period_falls_back(monkeypatch):
    monkeypatch.setenv("HABITAT_RESYNC_PERIOD", "soon")
    assert Settings().resync_period == 60.0
