'''Utility functions'''

from typing import List, Optional
import logging
import os
import subprocess
import sys


def setup_logging(filename: Optional[str] = None,
                  verbose: bool = False) -> None:
    '''Set up logging facility

    Args:
        filename (str): the name of the log file. Log to stdout if None.

        verbose (bool): print debug information, as well.

    Returns:
        None
    '''
    format_params = {
        'format': '%(asctime)s - %(levelname)s - %(message)s',
        'level': logging.DEBUG if verbose else logging.INFO,
    }
    if filename is not None:
        log_params = {'filename': filename, 'filemode': 'a', **format_params}
    else:
        log_params = {'stream': sys.stdout, **format_params}
    logging.basicConfig(**log_params)


def execute(cmd: List[str], discard_error: bool = False) -> bool:
    '''Call an external command and wait for it to finish

    Args:
        cmd (List[str]): the external command and its arguments

        discard_error (bool): skip logging error

    Returns:
        bool: True if the command exits with zero
    '''
    try:
        # check=True turns a non-zero exit code into CalledProcessError
        subprocess.run(cmd, check=True,
                       stdout=subprocess.DEVNULL,
                       stderr=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, OSError):
        if not discard_error:
            logging.error('Error occur when executing: %s', ' '.join(cmd))
        return False
    return True


def check_exists(name: str, is_file: bool) -> None:
    '''Check if a file or a folder exists

    Args:
        name (str): the name of the file or folder

        is_file (bool): a flag to indicate if we want to check
                         for a file or a folder

    Raises:
        FileNotFoundError: nothing exists at name

        IsADirectoryError: a file is expected but name is a folder

        NotADirectoryError: a folder is expected but name is not
    '''
    if not os.path.exists(name):
        raise FileNotFoundError(f'{name} not found')
    if is_file:
        if not os.path.isfile(name):
            raise IsADirectoryError(f'{name} is not a file')
    else:
        if not os.path.isdir(name):
            raise NotADirectoryError(f'{name} is not a folder')
