#!/usr/bin/env python
"""
Test runner script for the full backend suite
Usage: python Doc/run_tests.py [app_label ...]
"""
import os
import sys
import django
from django.conf import settings
from django.test.utils import get_runner

APP_LABELS = [
    'backend.core',
    'backend.workspaces',
    'backend.billing',
    'backend.locations',
    'backend.carriers',
    'backend.catalog',
    'backend.parties',
    'backend.orders',
    'backend.advertising',
    'backend.reports',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(sys.argv[1:] or APP_LABELS)
    sys.exit(bool(failures))
