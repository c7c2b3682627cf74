# dep/modules/config.py
import configparser
import os

DEFAULT_LOCATIONS = [
    "/etc/dep/dep.conf",
    os.path.expanduser("~/.config/dep/dep.conf"),
]

DEFAULT_BASE_DIR = os.path.expanduser("~/.local/share/dep/packages")


def default_locations():
    """Lista de arquivos candidatos; $DEP_CONF tem prioridade."""
    env = os.environ.get("DEP_CONF")
    if env:
        return [env] + DEFAULT_LOCATIONS
    return list(DEFAULT_LOCATIONS)


class DepConfig:
    def __init__(self, locations=None):
        self.locations = locations or default_locations()
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        self.reload()

    def reload(self):
        """(Re)carrega a configuração do primeiro arquivo disponível.

        Sem arquivo, todas as opções caem nos valores padrão.
        """
        self.config = configparser.ConfigParser()
        self.loaded_from = None
        for path in self.locations:
            if os.path.isfile(path):
                self.config.read(path)
                self.loaded_from = path
                return

    def get(self, section, option, fallback=None):
        try:
            return self.config.get(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return fallback

    def getboolean(self, section, option, fallback=False):
        try:
            return self.config.getboolean(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getint(self, section, option, fallback=0):
        try:
            return self.config.getint(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getfloat(self, section, option, fallback=0.0):
        try:
            return self.config.getfloat(section, option, fallback=fallback)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return fallback

    def getlist(self, section, option, fallback=None, delimiter=","):
        raw = self.get(section, option, fallback="")
        if raw:
            return [item.strip() for item in raw.split(delimiter) if item.strip()]
        return fallback or []

    # atalhos da seção [dep]
    @property
    def base_dir(self):
        return os.path.expanduser(self.get("dep", "base_dir", fallback=DEFAULT_BASE_DIR))

    @property
    def sync_mode(self):
        return self.get("dep", "sync", fallback="new").lower()

    @property
    def concurrency(self):
        return max(1, self.getint("dep", "concurrency", fallback=8))

    @property
    def git_timeout(self):
        timeout = self.getfloat("dep", "git_timeout", fallback=0.0)
        return timeout if timeout > 0 else None

    @property
    def root_id(self):
        return self.get("dep", "root", fallback="dep/dep")

    def __getitem__(self, section):
        if section in self.config:
            return dict(self.config[section])
        raise KeyError(f"Section '{section}' not found.")

    def __contains__(self, section):
        return section in self.config

# Instância global padrão para uso em outros módulos
config = DepConfig()
