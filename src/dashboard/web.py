"""
Web dashboard for Oracle Portfolio.

A stdlib HTTP server renders the panels; the resource hooks run on a
background event loop and the request threads only read their snapshots or
schedule work on that loop.
"""
from __future__ import annotations

import asyncio
import json
import threading
import webbrowser
from concurrent.futures import TimeoutError as FutureTimeoutError
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

from loguru import logger

from config.settings import Settings
from src.dashboard.views import build_dashboard_summary
from src.hooks import DashboardHooks, create_dashboard_hooks
from src.utils.exceptions import OraclePortfolioError

ACTION_TIMEOUT_SECONDS = 90.0

DASHBOARD_HTML = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Oracle Portfolio</title>
  <style>
    :root {
      color-scheme: dark;
      --bg: #0b1020;
      --card: #131a2a;
      --muted: #8892b0;
      --text: #e6edf3;
      --good: #22c55e;
      --bad: #ef4444;
      --accent: #60a5fa;
      --warn: #f59e0b;
    }
    body {
      margin: 0;
      font-family: Inter, ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif;
      background: radial-gradient(circle at top, #15203c, var(--bg));
      color: var(--text);
    }
    .container { max-width: 1200px; margin: 20px auto; padding: 0 16px; }
    h1 { margin: 0 0 6px; font-size: 1.8rem; }
    .subtitle { color: var(--muted); margin-bottom: 16px; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); gap: 12px; }
    .card {
      background: rgba(19, 26, 42, 0.92);
      border: 1px solid rgba(96, 165, 250, 0.18);
      border-radius: 12px;
      padding: 14px;
    }
    .card h2 { margin: 0 0 8px; font-size: 1rem; color: var(--accent); }
    .row { display: flex; justify-content: space-between; margin: 4px 0; }
    .label { color: var(--muted); font-size: 0.85rem; }
    .msg { font-size: 0.85rem; margin-top: 8px; }
    .good { color: var(--good); }
    .bad { color: var(--bad); }
    .warn { color: var(--warn); }
    .skeleton { height: 14px; background: #1f2940; border-radius: 6px; margin: 6px 0; }
    button, select {
      background: #1f2940; border: 1px solid #334155; color: var(--text);
      border-radius: 8px; padding: 4px 10px; cursor: pointer;
    }
    .chart-wrap { height: 260px; margin-top: 12px; }
    #chart { width: 100%; height: 100%; display: block; }
  </style>
</head>
<body>
  <div class="container">
    <h1>Oracle Portfolio</h1>
    <div class="subtitle">
      <span id="updatedAt">Loading...</span>
      <select id="country"></select>
    </div>
    <div class="grid" id="panels"></div>
    <div class="card" style="margin-top:12px">
      <h2>Backtesting: Oracle vs Benchmark</h2>
      <div id="btSummary" class="label"></div>
      <div class="chart-wrap"><canvas id="chart" width="1100" height="260"></canvas></div>
      <div id="btMessage" class="msg"></div>
    </div>
  </div>
  <script>
    const TITLES = {
      market_stress: "Market Stress", market_data: "ETF Prices", allocations: "Allocations",
      regime: "Economic Regime", countries: "Countries", backtesting: "Backtesting"
    };
    function rows(obj) {
      if (!obj || typeof obj !== "object") return "";
      return Object.entries(obj)
        .filter(([, v]) => v === null || typeof v !== "object")
        .map(([k, v]) => `<div class="row"><span class="label">${k}</span><span>${v}</span></div>`)
        .join("");
    }
    function body(panel) {
      const d = panel.data;
      if (panel.resource === "market_data" && d) return rows(d.etfs);
      if (panel.resource === "allocations" && d) return rows({regime: d.regime, ...d.allocation});
      if (panel.resource === "countries" && Array.isArray(d)) return rows(Object.fromEntries(d.map(c => [c.code, c.regime])));
      return rows(d);
    }
    function card(panel) {
      let inner = "";
      if (panel.status === "loading" && !panel.data) {
        inner = '<div class="skeleton"></div><div class="skeleton"></div>';
      } else {
        inner = body(panel);
      }
      const cls = panel.status === "error" ? "bad" : panel.status === "fallback" ? "warn" : "label";
      const msg = panel.message ? `<div class="msg ${cls}">${panel.message}</div>` : "";
      const retry = panel.retry_available ? `<button onclick="refetch('${panel.resource}')">Retry</button>` : "";
      return `<div class="card"><h2>${TITLES[panel.resource] || panel.resource} ${retry}</h2>${inner}${msg}</div>`;
    }
    function drawChart(chart) {
      const canvas = document.getElementById("chart");
      const ctx = canvas.getContext("2d");
      const w = canvas.width, h = canvas.height;
      ctx.clearRect(0, 0, w, h);
      ctx.fillStyle = "#101828";
      ctx.fillRect(0, 0, w, h);
      if (chart.status !== "ok") {
        ctx.fillStyle = "#94a3b8";
        ctx.font = "14px sans-serif";
        ctx.fillText(chart.message || "No data", 20, 28);
        return;
      }
      const values = chart.points.flatMap(p => [p.oracle, p.benchmark]);
      const maxVal = Math.max(...values), minVal = Math.min(0, ...values);
      const span = Math.max(1, maxVal - minVal);
      const pad = 36, innerW = w - pad - 16, innerH = h - 40;
      const line = (key, color) => {
        ctx.strokeStyle = color; ctx.lineWidth = 2; ctx.beginPath();
        chart.points.forEach((p, i) => {
          const x = pad + (i / Math.max(1, chart.points.length - 1)) * innerW;
          const y = 16 + innerH - ((p[key] - minVal) / span) * innerH;
          if (i === 0) ctx.moveTo(x, y); else ctx.lineTo(x, y);
        });
        ctx.stroke();
      };
      line("oracle", "#22d3ee");
      line("benchmark", "#f59e0b");
      ctx.fillStyle = "#94a3b8";
      ctx.font = "11px sans-serif";
      ctx.fillText(`${maxVal.toFixed(1)}%`, 4, 26);
      ctx.fillText(`${minVal.toFixed(1)}%`, 4, 16 + innerH);
    }
    function render(summary) {
      document.getElementById("updatedAt").textContent = `Updated: ${summary.generated_at} | ${summary.country}`;
      const panels = summary.panels || {};
      document.getElementById("panels").innerHTML = Object.values(panels)
        .filter(p => p.resource !== "backtesting").map(card).join("");
      const countries = (panels.countries && panels.countries.data) || [];
      const select = document.getElementById("country");
      if (countries.length && select.options.length !== countries.length) {
        select.innerHTML = countries.map(c => `<option value="${c.code}">${c.name}</option>`).join("");
      }
      select.value = summary.country;
      const bt = panels.backtesting || {};
      const s = bt.summary;
      document.getElementById("btSummary").textContent = s
        ? `Oracle ${s.oracle_return}% | Benchmark ${s.benchmark_return}% | Outperformance ${s.outperformance}%`
        : "";
      document.getElementById("btMessage").textContent = bt.message || "";
      drawChart(bt.chart || {status: "no_data", message: "No data"});
    }
    async function refresh() {
      try {
        const res = await fetch('/api/summary');
        render(await res.json());
      } catch (_) {
        document.getElementById("updatedAt").textContent = "Dashboard error: could not fetch data";
      }
    }
    async function refetch(resource) {
      await fetch(`/api/refetch?resource=${resource}`, {method: "POST"});
      refresh();
    }
    document.getElementById("country").addEventListener("change", async (e) => {
      await fetch(`/api/country?code=${e.target.value}`, {method: "POST"});
      refresh();
    });
    refresh();
    setInterval(refresh, 5000);
  </script>
</body>
</html>
"""


class DashboardRuntime:
    """Runs the hooks on a private event loop in a daemon thread."""

    def __init__(self, hooks_factory: Callable[[], DashboardHooks]) -> None:
        self._hooks_factory = hooks_factory
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="dashboard-hooks", daemon=True)
        self.hooks: Optional[DashboardHooks] = None

    def start(self, wait: bool = False) -> None:
        self._thread.start()
        self.hooks = self._call(self._create(), timeout=ACTION_TIMEOUT_SECONDS)
        future = asyncio.run_coroutine_threadsafe(self.hooks.start(), self._loop)
        if wait:
            future.result(timeout=ACTION_TIMEOUT_SECONDS)

    async def _create(self) -> DashboardHooks:
        # httpx clients are bound to the loop they are first used on.
        return self._hooks_factory()

    def _call(self, coro: Any, timeout: float = ACTION_TIMEOUT_SECONDS) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout=timeout)

    def _require_hooks(self) -> DashboardHooks:
        if self.hooks is None:
            raise RuntimeError("Dashboard runtime used before start()")
        return self.hooks

    def summary(self) -> dict[str, Any]:
        hooks = self._require_hooks()

        async def snapshot() -> dict[str, Any]:
            return build_dashboard_summary(hooks)

        return self._call(snapshot())

    def refetch(self, resource: str) -> None:
        self._call(self._require_hooks().refetch(resource))

    def select_country(self, code: str) -> None:
        self._call(self._require_hooks().select_country(code))

    def stop(self) -> None:
        if self.hooks is not None:
            self._call(self.hooks.close())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        self._loop.close()


class DashboardHTTPServer(ThreadingHTTPServer):
    """HTTP server carrying the hook runtime for request handlers."""

    def __init__(self, server_address: tuple[str, int], runtime: DashboardRuntime) -> None:
        super().__init__(server_address, DashboardHandler)
        self.runtime = runtime


class DashboardHandler(BaseHTTPRequestHandler):
    """Serve dashboard assets and JSON API."""

    server: DashboardHTTPServer

    def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler signature)
        path = urlparse(self.path).path
        if path == "/":
            self._send_html(DASHBOARD_HTML)
            return
        if path == "/api/summary":
            self._send_json(self.server.runtime.summary())
            return
        self.send_error(HTTPStatus.NOT_FOUND, "Not Found")

    def do_POST(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        query = {k: v[-1] for k, v in parse_qs(parsed.query).items()}
        runtime = self.server.runtime

        try:
            if parsed.path == "/api/refetch":
                runtime.refetch(query.get("resource", ""))
            elif parsed.path == "/api/country":
                runtime.select_country(query.get("code", ""))
            else:
                self.send_error(HTTPStatus.NOT_FOUND, "Not Found")
                return
        except (KeyError, ValueError) as exc:
            self._send_json({"success": False, "error": str(exc)}, HTTPStatus.BAD_REQUEST)
            return
        except (OraclePortfolioError, FutureTimeoutError) as exc:
            logger.warning(f"Dashboard action {parsed.path} failed: {exc}")
            self._send_json({"success": False, "error": str(exc)}, HTTPStatus.BAD_GATEWAY)
            return

        self._send_json({"success": True, **runtime.summary()})

    def log_message(self, fmt: str, *args: Any) -> None:
        logger.debug("web-dashboard: " + fmt, *args)

    def _send_html(self, body: str) -> None:
        raw = body.encode("utf-8")
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)

    def _send_json(self, payload: dict[str, Any], status: HTTPStatus = HTTPStatus.OK) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def run_web_dashboard(
    settings: Settings,
    host: Optional[str] = None,
    port: Optional[int] = None,
    open_browser: bool = True,
) -> None:
    """Run the local web dashboard and open the browser."""
    host = host or settings.server.host
    port = port or settings.server.dashboard_port

    runtime = DashboardRuntime(lambda: create_dashboard_hooks(settings))
    runtime.start()
    server = DashboardHTTPServer((host, port), runtime)
    url = f"http://{host}:{port}"
    logger.info(f"Starting web dashboard at {url}")

    if open_browser:
        threading.Thread(target=lambda: webbrowser.open(url), daemon=True).start()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Web dashboard stopped by user")
    finally:
        server.server_close()
        runtime.stop()
