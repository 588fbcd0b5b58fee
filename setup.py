#!/usr/bin/env python3
import os
import subprocess

from setuptools import setup, find_packages

DESCRIPTION = 'Client library for µRaiden unidirectional micropayment channels.'
VERSION = open('uraiden/VERSION', 'r').read().strip()


def read_requirements(path: str):
    assert os.path.isfile(path)
    with open(path) as requirements:
        return requirements.read().split()


def read_version_from_git():
    try:
        import shlex
        git_version, _ = subprocess.Popen(
            shlex.split('git describe --tags'),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE
        ).communicate()
        git_version = git_version.decode()
        if git_version.startswith('v'):
            git_version = git_version[1:]

        git_version = git_version.strip()
        # if this is has commits after the tag, it's a prerelease:
        if git_version.count('-') == 2:
            _, _, commit = git_version.split('-')
            if commit.startswith('g'):
                commit = commit[1:]
            return '{}+git.r{}'.format(VERSION, commit)
        elif git_version.count('.') == 2:
            return git_version
        else:
            return VERSION
    except (OSError, ValueError) as e:
        print('could not read version from git: {}'.format(e))
        return VERSION


config = {
    'version': read_version_from_git(),
    'scripts': [],
    'name': 'uraiden',
    'author': 'Brainbot Labs Est.',
    'author_email': 'contact@brainbot.li',
    'description': DESCRIPTION,
    'url': 'https://github.com/raiden-network/microraiden/',
    'license': 'MIT',
    'keywords': 'raiden ethereum microraiden blockchain micropayments',
    'install_requires': read_requirements('requirements.txt'),
    'extras_require': {'dev': read_requirements('requirements-dev.txt')},
    'packages': find_packages(exclude=['test']),
    'package_data': {'uraiden': ['data/contracts.json', 'VERSION']},
    'entry_points': {
        'console_scripts': ['uraiden=uraiden.cli:main'],
    },
    'classifiers': [
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
    ],
}

setup(**config)
