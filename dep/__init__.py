"""dep - gerenciador de pacotes declarativo baseado em clones git."""

__version__ = "0.1.0"
