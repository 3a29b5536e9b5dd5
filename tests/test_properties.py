import pytest

from pyslp.properties import CONF_ENV_VAR, PropertyStore, load_conf_file, parse_conf_text


def test_defaults():
    store = PropertyStore(read_files=False)
    assert store.get("net.slp.multicastMaximumWait") == "15000"
    assert store.get_int("net.slp.port") == 427
    assert store.get_bool("net.slp.isBroadcastOnly") is False
    assert store.get_int_list("net.slp.multicastTimeouts") == [500, 750, 1000, 1500, 2000, 3000]
    assert store.get("net.slp.unknown") is None


def test_overrides_take_precedence(tmp_path):
    path = tmp_path / "slp.conf"
    path.write_text("net.slp.useScopes = lab\nnet.slp.MTU = 1000\n")
    store = PropertyStore(overrides={"net.slp.MTU": 576}, path=path)
    assert store.get_list("net.slp.useScopes") == ["lab"]
    assert store.get_int("net.slp.MTU") == 576


def test_parse_conf_text():
    text = "# comment\n; another\n\nnet.slp.DAAddresses = 10.0.0.1, 10.0.0.2\n"
    assert parse_conf_text(text) == {"net.slp.DAAddresses": "10.0.0.1, 10.0.0.2"}


def test_parse_conf_text_malformed():
    with pytest.raises(ValueError):
        parse_conf_text("net.slp.useScopes lab")


def test_load_yaml(tmp_path):
    path = tmp_path / "slp.yaml"
    path.write_text(
        "net.slp.useScopes: [lab, office]\n"
        "net.slp.isBroadcastOnly: true\n"
        "net.slp.maxResults: 10\n"
    )
    assert load_conf_file(path) == {
        "net.slp.useScopes": "lab,office",
        "net.slp.isBroadcastOnly": "true",
        "net.slp.maxResults": "10",
    }


def test_load_yaml_not_mapping(tmp_path):
    path = tmp_path / "slp.yml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_conf_file(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_conf_file(tmp_path / "missing.conf")


def test_env_var_path(tmp_path, monkeypatch):
    path = tmp_path / "env.conf"
    path.write_text("net.slp.locale = fr\n")
    monkeypatch.setenv(CONF_ENV_VAR, str(path))
    assert PropertyStore().get("net.slp.locale") == "fr"


def test_set_is_ignored():
    store = PropertyStore(read_files=False)
    store.set("net.slp.locale", "de")
    assert store.get("net.slp.locale") == "en"


def test_bad_integer_uses_default():
    store = PropertyStore(overrides={"net.slp.MTU": "big"}, read_files=False)
    assert store.get_int("net.slp.MTU", 1400) == 1400


def test_int_list_skips_garbage():
    store = PropertyStore(overrides={"net.slp.unicastTimeouts": "100,x,200"}, read_files=False)
    assert store.get_int_list("net.slp.unicastTimeouts") == [100, 200]
