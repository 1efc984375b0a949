#!/usr/bin/env python3
'''Test file for the utils package'''

# pylint: disable=import-error
import sys
import pytest
from utils import check_exists, execute


def test_execute_success():
    '''A command exiting with zero succeeds'''
    assert execute([sys.executable, '-c', 'pass'])


def test_execute_failure():
    '''A command exiting with non-zero fails'''
    assert not execute([sys.executable, '-c', 'raise SystemExit(3)'],
                       discard_error=True)


def test_execute_missing_command():
    '''A command which does not exist fails instead of raising'''
    assert not execute(['mdp-no-such-command'])


def test_check_exists(tmp_path):
    '''Files and folders are told apart'''
    filename = tmp_path / 'page.html'
    filename.write_text('x', encoding='utf-8')

    check_exists(str(filename), is_file=True)
    check_exists(str(tmp_path), is_file=False)

    with pytest.raises(FileNotFoundError):
        check_exists(str(tmp_path / 'missing.html'), is_file=True)
    with pytest.raises(IsADirectoryError):
        check_exists(str(tmp_path), is_file=True)
    with pytest.raises(NotADirectoryError):
        check_exists(str(filename), is_file=False)
