import sys
import os
import traceback

# Add src to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), 'src')))

# Import tests
from tests import test_lexer
from tests import test_parser
from tests import test_context
from tests import test_semantic
from tests import test_semantic_ownership
from tests import test_semantic_calls
from tests import test_semantic_items

def run_test(test_func):
    try:
        test_func()
        print(f"[PASS] {test_func.__name__}")
        return True
    except Exception:
        print(f"[FAIL] {test_func.__name__}")
        traceback.print_exc()
        return False

def collect(module):
    # Parametrized and fixture-based tests only run under pytest
    return [
        getattr(module, name) for name in dir(module)
        if name.startswith("test_") and callable(getattr(module, name))
        and not hasattr(getattr(module, name), "pytestmark")
        and getattr(module, name).__code__.co_argcount == 0
    ]

def main():
    print("Running tests...")
    tests = []
    for module in [
        test_lexer,
        test_parser,
        test_context,
        test_semantic,
        test_semantic_ownership,
        test_semantic_calls,
        test_semantic_items,
    ]:
        tests.extend(collect(module))

    passed = 0
    for test in tests:
        if run_test(test):
            passed += 1

    print(f"\n{passed}/{len(tests)} tests passed.")
    if passed != len(tests):
        sys.exit(1)

if __name__ == "__main__":
    main()
