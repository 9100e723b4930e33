import os
import typing

import yaml

DEFAULT_SETTINGS_FILE = os.path.join(os.path.dirname(__file__), "settings.default.yaml")


class SettingsError(ValueError):
    pass


def default_settings() -> typing.Dict[str, typing.Any]:
    with open(DEFAULT_SETTINGS_FILE) as f:
        return yaml.safe_load(f)


def load_settings(path: str) -> typing.Dict[str, typing.Any]:
    settings = default_settings()
    with open(path) as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsError("%s: not valid YAML\n%s" % (path, e)) from e
    if loaded is None:
        return settings
    if not isinstance(loaded, dict):
        raise SettingsError(
            "%s: expected a mapping, got %s" % (path, type(loaded).__name__)
        )
    unknown = sorted(set(loaded) - set(settings))
    if unknown:
        raise SettingsError("%s: unknown settings %s" % (path, ", ".join(unknown)))
    settings.update(loaded)
    return settings
