from php_sniffer import config, domain


def test__defaults_without_settings():
    settings = config.SnifferSettings.from_raw(None)

    assert settings.run == config.TriggerMode.ON_SAVE
    assert settings.on_type_delay == 250
    assert settings.executables_folder == ""
    assert settings.standard == ""
    assert settings.snippet_exclude_sniffs == []


def test__reads_client_keys():
    settings = config.SnifferSettings.from_raw(
        {
            "run": "onType",
            "onTypeDelay": 100,
            "executablesFolder": "vendor/bin/",
            "standard": "PSR12",
            "snippetExcludeSniffs": ["Generic.Files.LineLength"],
        }
    )

    assert settings.run_config() == config.RunConfig(
        trigger_mode=config.TriggerMode.ON_TYPE,
        debounce_delay_ms=100,
        executables_folder="vendor/bin/",
        standard="PSR12",
    )
    assert settings.snippet_exclude_sniffs == ["Generic.Files.LineLength"]


def test__invalid_values_are_replaced_by_defaults():
    settings = config.SnifferSettings.from_raw(
        {"run": "onTyping", "onTypeDelay": -5, "standard": "PSR2"}
    )

    assert settings.run == config.TriggerMode.ON_SAVE
    assert settings.on_type_delay == 250
    assert settings.standard == "PSR2"


def test__non_object_settings_give_defaults():
    assert config.SnifferSettings.from_raw("onType") == config.SnifferSettings()


def test__dumps_with_client_keys():
    raw = config.SnifferSettings(standard="PSR12").to_raw()

    assert raw["standard"] == "PSR12"
    assert raw["onTypeDelay"] == 250
    assert raw["run"] == "onSave"


def test__changed_keys():
    old = config.SnifferSettings().to_raw()
    new = config.SnifferSettings(run=config.TriggerMode.ON_TYPE, standard="PSR12").to_raw()

    assert config.changed_keys(old, new) == frozenset({"run", "standard"})
    assert config.changed_keys(old, old) == frozenset()


def test__configuration_change_event_affects_section_and_keys():
    event = domain.ConfigurationChangeEvent(
        section="phpSniffer", changed_keys=frozenset({"run"})
    )

    assert event.affects_configuration("phpSniffer")
    assert event.affects_configuration("phpSniffer.run")
    assert not event.affects_configuration("phpSniffer.onTypeDelay")
    assert not event.affects_configuration("editor")


def test__configuration_change_without_changed_keys_affects_nothing():
    event = domain.ConfigurationChangeEvent(section="phpSniffer", changed_keys=frozenset())

    assert not event.affects_configuration("phpSniffer")


def test__changed_section_affects_section_but_not_its_keys():
    event = domain.ConfigurationChangeEvent(
        section="phpSniffer", changed_keys=frozenset(), section_changed=True
    )

    assert event.affects_configuration("phpSniffer")
    assert not event.affects_configuration("phpSniffer.run")
