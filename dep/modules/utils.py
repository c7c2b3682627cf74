# dep/modules/utils.py

import os
import shutil


class Utils:
    """
    Operações de sistema de arquivos usadas pelo motor (existência, varredura, remoção).
    """

    @staticmethod
    def join_path(*args):
        """
        Retorna caminho absoluto concatenando partes.
        """
        return os.path.abspath(os.path.join(*args))

    @staticmethod
    def is_dir(path):
        return os.path.isdir(path)

    @staticmethod
    def list_entries(path):
        """
        Retorna os nomes de todas as entradas de um diretório (arquivos e subdiretórios).
        Levanta OSError se o diretório não puder ser lido.
        """
        with os.scandir(path) as it:
            return sorted(entry.name for entry in it)

    @staticmethod
    def remove_tree(path):
        """
        Remoção recursiva forçada; arquivos soltos e links também são removidos.
        """
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
