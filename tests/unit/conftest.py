"""Shared fixtures for unit tests."""

import pytest


ARTICLE_HTML = """<!DOCTYPE html>
<html>
<head>
<title>Understanding Event Loops | Example Blog</title>
<meta name="author" content="Jane Doe">
<script>window.analytics = {"page": "article"};</script>
<style>body { font-family: serif; }</style>
</head>
<body>
<nav class="site-nav"><a href="/">Home</a> <a href="/archive">Archive</a> <a href="/about">About</a></nav>
<div class="ad-banner">Buy our product now, limited offer, click here today for great savings on everything.</div>
<article>
<h1>Understanding Event Loops</h1>
<p>An event loop is the heart of every asynchronous runtime. It waits for work, picks the next
ready task, runs it until the task yields, and then goes back to waiting. Once you see the loop
as a simple scheduler, most of the mystery around asynchronous code disappears quickly.</p>
<p>Every task in the loop is a small state machine. When a task needs data from the network, it
registers interest in a socket and yields control, so the loop is free to run other tasks. When
the socket becomes readable, the loop wakes the task up again and it continues where it stopped.</p>
<h2>How scheduling works</h2>
<p>The scheduler keeps a queue of ready callbacks and a heap of timers. On each iteration, it
computes how long it may sleep, polls the operating system for input and output events, moves
expired timers to the ready queue, and finally runs every callback that is ready to go right now.</p>
<pre><code class="language-python">import asyncio

async def main():
    await asyncio.sleep(1)</code></pre>
<ul><li>Tasks yield at await points</li><li>Timers live in a heap</li></ul>
<blockquote>Concurrency is about dealing with lots of things at once.</blockquote>
<figure><img src="/images/loop.png" alt="Event loop diagram"><figcaption>The loop</figcaption></figure>
<table><tr><th>Task</th><th>Time</th></tr><tr><td>fetch</td><td>10 ms</td></tr></table>
<p>Blocking calls are the enemy of this design. A single call that sleeps or spins inside a
callback stalls every other task, because the loop cannot preempt running code. This is why
libraries offer asynchronous versions of their clients, and why heavy computation belongs in a
separate thread or process pool instead of the loop itself.</p>
<p>Cancellation is delivered as an exception at the next await point. Well behaved code cleans up
in a finally block, releases its locks, and lets the exception propagate, so that the caller can
decide what to do next. Swallowing cancellation leads to tasks that never finish and programs
that hang on shutdown, which is frustrating to debug in production systems.</p>
<p>With these pieces in place, writing fast network services becomes a matter of composition,
not magic. Start small, measure often, and keep the loop free of blocking work, and you will find
that asynchronous programs are as easy to reason about as their synchronous cousins.</p>
</article>
<footer>Copyright Example Blog, all rights reserved. Follow us for more posts every week.</footer>
</body>
</html>
"""

BLANK_HTML = "<html><head><title></title></head><body></body></html>"


@pytest.fixture
def article_html() -> str:
    """A well-formed article page of more than 200 words."""
    return ARTICLE_HTML


@pytest.fixture
def blank_html() -> str:
    """A page with no readable content."""
    return BLANK_HTML
