import argparse
import json
import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns


# ================================
# CONFIGURATION
# ================================

OUTPUT_DIR = "comparison_output/graphs"

MODE_LABELS = {"load_all": "Load All", "smart": "Smart"}


# ================================
# LOAD DATA
# ================================

def load_results(details_file: str) -> pd.DataFrame:

    with open(details_file, "r", encoding="utf-8") as f:
        details = json.load(f)

    df = pd.DataFrame(details)

    if df.empty or "success" not in df:
        return pd.DataFrame(columns=["question", "mode", "cost", "response_time_ms", "docs_loaded"])

    df = df[df["success"]].copy()
    df["mode_label"] = df["mode"].map(MODE_LABELS)

    return df


# ================================
# GRAPHS
# ================================

def generate_graphs(df: pd.DataFrame, output_dir: str = OUTPUT_DIR) -> list:

    os.makedirs(output_dir, exist_ok=True)

    sns.set(style="whitegrid")

    written = []

    # Cost per query, side by side
    plt.figure(figsize=(10, 6))
    sns.barplot(data=df, x="mode_label", y="cost", errorbar=None)
    plt.title("Average Cost per Query")
    plt.xlabel("Mode")
    plt.ylabel("Cost (USD)")
    path = os.path.join(output_dir, "cost_by_mode.png")
    plt.savefig(path)
    plt.close()
    written.append(path)

    # Latency distribution
    plt.figure(figsize=(10, 6))
    sns.boxplot(data=df, x="mode_label", y="response_time_ms")
    plt.title("Response Time by Mode")
    plt.xlabel("Mode")
    plt.ylabel("Response time (ms)")
    path = os.path.join(output_dir, "latency_by_mode.png")
    plt.savefig(path)
    plt.close()
    written.append(path)

    # Documents loaded
    plt.figure(figsize=(8, 5))
    sns.countplot(data=df, x="docs_loaded", hue="mode_label")
    plt.title("Documents Loaded per Query")
    plt.xlabel("Documents loaded")
    plt.ylabel("Count")
    path = os.path.join(output_dir, "docs_loaded.png")
    plt.savefig(path)
    plt.close()
    written.append(path)

    # Cumulative spend over the run
    fig, ax = plt.subplots(figsize=(10, 5))
    for mode, group in df.groupby("mode"):
        ax.plot(group["cost"].cumsum().values, marker="o", label=MODE_LABELS.get(mode, mode))
    ax.set_title("Cumulative Spend")
    ax.set_xlabel("Query index")
    ax.set_ylabel("USD")
    ax.legend()
    path = os.path.join(output_dir, "cumulative_spend.png")
    fig.savefig(path)
    plt.close(fig)
    written.append(path)

    return written


def main():

    parser = argparse.ArgumentParser(description="Plot comparison runner output")
    parser.add_argument("details_file")
    parser.add_argument("--output-dir", default=OUTPUT_DIR)
    args = parser.parse_args()

    df = load_results(args.details_file)

    if df.empty:
        print("No successful queries to plot.")
        return

    written = generate_graphs(df, args.output_dir)

    print("\nGraphs generated successfully.")
    print(f"Saved in: {args.output_dir} ({len(written)} files)")


if __name__ == "__main__":

    main()
