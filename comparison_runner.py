import argparse
import json
import os
import statistics
import time
from datetime import datetime, timezone
from typing import Dict, List

import requests


# ============================================================
# CONFIGURATION
# ============================================================

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:3000")

DATASET_PATH = "comparison_dataset.json"

OUTPUT_DIR = "comparison_output"

TIMEOUT_SECONDS = 120

MODES = {
    "load_all": "/query-all",
    "smart": "/query-smart",
}


# ============================================================
# LOAD DATASET
# ============================================================

def load_dataset(path: str) -> List[Dict]:

    with open(path, "r", encoding="utf-8") as f:
        dataset = json.load(f)

    if not isinstance(dataset, list):
        raise ValueError("Dataset must be a list")

    if len(dataset) == 0:
        raise ValueError("Dataset empty")

    return dataset


# ============================================================
# QUERY ONE MODE
# ============================================================

def query_mode(api_base: str, mode: str, question: str) -> Dict:
    """
    One request, no retry: a retried query would spend budget twice.
    """

    start_time = time.time()

    try:

        response = requests.post(
            f"{api_base}{MODES[mode]}",
            json={"question": question},
            timeout=TIMEOUT_SECONDS,
        )

    except requests.RequestException as e:

        return {"success": False, "error": str(e)}

    latency = time.time() - start_time

    if response.status_code != 200:

        try:
            error = response.json().get("error", f"HTTP {response.status_code}")
        except ValueError:
            error = f"HTTP {response.status_code}"

        return {
            "success": False,
            "error": error,
            "budget_exhausted": response.status_code == 429,
        }

    data = response.json()

    return {
        "success": True,
        "latency": latency,
        "answer": data.get("answer", ""),
        "cost": data.get("cost", 0.0),
        "docs_loaded": data.get("docsLoaded", 0),
        "response_time_ms": data.get("responseTime", 0),
        "cache_read_tokens": data.get("cacheStats", {}).get("cacheReadTokens", 0),
    }


# ============================================================
# SCORING
# ============================================================

def compute_accuracy(answer: str, expected_keywords: List[str]) -> float:

    if not answer or not expected_keywords:
        return 0.0

    answer_lower = answer.lower()

    matches = sum(1 for k in expected_keywords if k.lower() in answer_lower)

    return matches / len(expected_keywords)


def percentile(values: List[float], p: float) -> float:

    if not values:
        return 0.0

    values_sorted = sorted(values)

    k = int(round((p / 100) * (len(values_sorted) - 1)))

    return values_sorted[k]


def summarize(results: List[Dict], total_questions: int) -> Dict:
    """
    Per-mode aggregates plus the smart mode's cost saving relative to
    loading everything.
    """

    summary = {"total_questions": total_questions, "modes": {}}

    for mode in MODES:

        rows = [r for r in results if r["mode"] == mode and r["success"]]

        costs = [r["cost"] for r in rows]
        latencies = [r["response_time_ms"] for r in rows]

        summary["modes"][mode] = {
            "success_rate": len(rows) / total_questions if total_questions else 0.0,
            "answer_accuracy": statistics.mean(r["accuracy"] for r in rows) if rows else 0.0,
            "total_cost": sum(costs),
            "avg_cost": statistics.mean(costs) if costs else 0.0,
            "avg_docs_loaded": statistics.mean(r["docs_loaded"] for r in rows) if rows else 0.0,
            "p50_latency_ms": percentile(latencies, 50),
            "p95_latency_ms": percentile(latencies, 95),
        }

    all_cost = summary["modes"]["load_all"]["total_cost"]
    smart_cost = summary["modes"]["smart"]["total_cost"]

    summary["cost_saving_pct"] = (
        (all_cost - smart_cost) / all_cost * 100 if all_cost > 0 else 0.0
    )

    return summary


# ============================================================
# MAIN COMPARISON LOOP
# ============================================================

def run_comparison(api_base: str, dataset_path: str, output_dir: str) -> Dict:

    dataset = load_dataset(dataset_path)

    os.makedirs(output_dir, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    results = []

    print("\nStarting comparison\n")

    for idx, item in enumerate(dataset):

        question = item["question"]
        expected_keywords = item.get("expected_answer_contains", [])

        print(f"[{idx + 1}/{len(dataset)}] {question}")

        for mode in MODES:

            response = query_mode(api_base, mode, question)

            if not response["success"]:

                results.append({
                    "question": question,
                    "mode": mode,
                    "success": False,
                    "error": response.get("error"),
                })

                if response.get("budget_exhausted"):
                    print("Budget exhausted, stopping early")
                    break

                continue

            results.append({
                "question": question,
                "mode": mode,
                "success": True,
                "answer": response["answer"],
                "accuracy": compute_accuracy(response["answer"], expected_keywords),
                "cost": response["cost"],
                "docs_loaded": response["docs_loaded"],
                "response_time_ms": response["response_time_ms"],
                "cache_read_tokens": response["cache_read_tokens"],
                "latency": response["latency"],
                "timestamp": timestamp,
            })

        else:
            continue

        break

    summary = summarize(results, len(dataset))
    summary["timestamp"] = timestamp
    summary["api_base"] = api_base

    results_path = os.path.join(output_dir, f"detailed_results_{timestamp}.json")
    summary_path = os.path.join(output_dir, f"summary_{timestamp}.json")

    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2)

    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)

    print("\n=== COMPARISON ===\n")
    print(json.dumps(summary, indent=2))
    print(f"\nDetailed results saved: {results_path}")
    print(f"Summary saved: {summary_path}")

    return summary


# ============================================================
# ENTRY POINT
# ============================================================

def main():

    parser = argparse.ArgumentParser(description="Compare load-all and smart query modes")
    parser.add_argument("--api-base", default=API_BASE)
    parser.add_argument("--dataset", default=DATASET_PATH)
    parser.add_argument("--output-dir", default=OUTPUT_DIR)
    args = parser.parse_args()

    run_comparison(args.api_base, args.dataset, args.output_dir)


if __name__ == "__main__":

    main()
