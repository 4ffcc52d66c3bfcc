"""
Sandbox worker process.

Started by agentflow.tools.sandbox as `python -I _sandbox_worker.py`. It
must not import anything from agentflow: it runs with no access to the
caller's modules, environment or working directory.

Protocol (one message each way):
    stdin:  {"code": "<python source>"}
    stdout: {"ok": true, "result": <value>, "stdout": "<printed text>"}
            {"ok": false, "error": "<ExceptionType>: <message>"}

Snippets are compiled with RestrictedPython: attribute names starting with
an underscore are rejected, attribute/item/iteration access goes through
guards, and only a small builtin set is visible. The snippet sees a
read-only `demo_functions` mapping and reports its answer by binding a
variable named `result`.
"""

import builtins
import json
import operator
import sys
import types

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)
from RestrictedPython.Limits import limited_builtins
from RestrictedPython.PrintCollector import PrintCollector
from RestrictedPython.Utilities import utility_builtins

ALLOWED_MODULES = frozenset({
    "bisect", "collections", "datetime", "decimal", "fractions", "functools",
    "heapq", "itertools", "json", "math", "operator", "random", "re",
    "statistics", "string",
})

EXTRA_BUILTINS = {
    "all": all, "any": any, "dict": dict, "enumerate": enumerate,
    "filter": filter, "list": list, "map": map, "max": max, "min": min,
    "reversed": reversed, "sum": sum,
}

INPLACE_OPERATORS = {
    "+=": operator.iadd, "-=": operator.isub, "*=": operator.imul,
    "/=": operator.itruediv, "//=": operator.ifloordiv, "%=": operator.imod,
    "**=": operator.ipow, "<<=": operator.ilshift, ">>=": operator.irshift,
    "&=": operator.iand, "^=": operator.ixor, "|=": operator.ior,
}

MEMORY_LIMIT_BYTES = 512 * 1024 * 1024

DEMO_SOURCE = """
import random

def fibonacci(n):
    out = []
    a, b = 0, 1
    for i in range(n):
        out.append(a)
        a, b = b, a + b
    return out

def is_prime(n):
    if n < 2:
        return False
    i = 2
    while i * i <= n:
        if n % i == 0:
            return False
        i += 1
    return True

def generate_random_data(n=10):
    return [random.random() for i in range(n)]
"""

DEMO_NAMES = ("fibonacci", "is_prime", "generate_random_data")


def _safe_import(name, globals=None, locals=None, fromlist=(), level=0):
    if level != 0 or name.partition(".")[0] not in ALLOWED_MODULES:
        raise ImportError(f"import of '{name}' is not allowed in the sandbox")
    return builtins.__import__(name, globals, locals, fromlist, level)


def _guarded_getattr(obj, name, *default):
    # Allowed modules re-export others (statistics.sys, re.enum)
    value = safer_getattr(obj, name, *default)
    if isinstance(value, types.ModuleType) and value.__name__.partition(".")[0] not in ALLOWED_MODULES:
        raise AttributeError(f"access to module '{value.__name__}' is not allowed in the sandbox")
    return value


def _inplacevar(op, x, y):
    try:
        return INPLACE_OPERATORS[op](x, y)
    except KeyError:
        raise SyntaxError(f"unsupported in-place operator {op}") from None


def _apply(func, *args, **kwargs):
    return func(*args, **kwargs)


def _print_collector(buffer):
    """PrintCollector whose instances all write into one shared buffer."""

    class Collector(PrintCollector):
        def __init__(self, _getattr_=None):
            super().__init__(_getattr_)
            self.txt = buffer

    return Collector


def _restricted_globals(printed):
    allowed = dict(safe_builtins)
    allowed.update(limited_builtins)
    allowed.update(utility_builtins)
    allowed.update(EXTRA_BUILTINS)
    allowed["__import__"] = _safe_import
    allowed["getattr"] = _guarded_getattr

    return {
        "__builtins__": allowed,
        "__name__": "__sandbox__",
        "__metaclass__": type,
        "_getattr_": _guarded_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": default_guarded_getiter,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
        "_apply_": _apply,
        "_print_": _print_collector(printed),
    }


def build_demo_functions():
    """Compile the demo helpers under the same restrictions as snippets."""
    namespace = _restricted_globals([])
    exec(compile_restricted(DEMO_SOURCE, "<demo_functions>", "exec"), namespace)
    return types.MappingProxyType({name: namespace[name] for name in DEMO_NAMES})


def _apply_limits():
    """No file writes, bounded memory. POSIX only."""
    try:
        import resource
    except ImportError:
        return
    for limit, value in ((resource.RLIMIT_FSIZE, 0), (resource.RLIMIT_AS, MEMORY_LIMIT_BYTES)):
        try:
            _, hard = resource.getrlimit(limit)
            if hard != resource.RLIM_INFINITY:
                value = min(value, hard)
            resource.setrlimit(limit, (value, hard))
        except (ValueError, OSError):
            pass


def run(code):
    compiled = compile_restricted(code, "<sandbox>", "exec")
    printed = []
    namespace = _restricted_globals(printed)
    namespace["demo_functions"] = build_demo_functions()
    exec(compiled, namespace)
    return namespace.get("result"), "".join(printed)


def main():
    try:
        request = json.loads(sys.stdin.buffer.read().decode("utf-8"))
        _apply_limits()
        value, printed = run(request["code"])
        reply = {"ok": True, "result": value, "stdout": printed}
    except (Exception, SystemExit) as e:
        reply = {"ok": False, "error": f"{type(e).__name__}: {e}"}

    payload = json.dumps(reply, default=repr)
    sys.stdout.buffer.write(payload.encode("utf-8") + b"\n")
    sys.stdout.flush()


if __name__ == "__main__":
    main()
