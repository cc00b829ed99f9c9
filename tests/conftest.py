from __future__ import annotations

import pytest

SAMPLE_PATCH = """diff --git a/src/demo.py b/src/demo.py
index 1111111..2222222 100644
--- a/src/demo.py
+++ b/src/demo.py
@@ -1,2 +1,3 @@
 def greet():
-    return \"hi\"
+    message = \"hi\"
+    return message
"""

TWO_HUNK_PATCH = """--- a/notes.txt
+++ b/notes.txt
@@ -1,3 +1,3 @@
 alpha
-beta
+BETA
 gamma
@@ -10,2 +10,3 @@ def tail():
 omega
+psi
 end
"""


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Run AnyIO-marked tests on asyncio; the staging tests use asyncio tasks."""
    return "asyncio"


@pytest.fixture
def sample_patch() -> str:
    return SAMPLE_PATCH


@pytest.fixture
def two_hunk_patch() -> str:
    return TWO_HUNK_PATCH
