# examples/run_simple.py

import logging
import os

import matplotlib.pyplot as plt

from cpmm_abm.models.pool_model import PoolModel
from cpmm_abm.utils.config_parser import load_config


def main():
    logging.basicConfig(level=logging.WARNING)

    # 1. Locate and load the YAML configuration
    script_dir = os.path.dirname(os.path.abspath(__file__))
    config = load_config(os.path.join(script_dir, "config_simple.yaml"))

    # 2. Instantiate and run the PoolModel
    model = PoolModel(config)
    df = model.run()

    # 3. Print the last few rows of the DataFrame
    print("\n=== Final pool state (last 5 steps) ===")
    print(df.tail())

    # 4. Summarize pool activity
    print("\n=== Activity ===")
    print(f"swaps={len(model.metrics['swaps'])} "
          f"deposits={len(model.metrics['deposits'])} "
          f"withdrawals={len(model.metrics['withdrawals'])} "
          f"rejections={model.count_rejections()}")

    # 5. Plot reserves and invariant drift
    fig, ax1 = plt.subplots(figsize=(8, 4))
    ax1.plot(df.index, df["Reserve_A"], label="Reserve A", color="tab:blue")
    ax1.plot(df.index, df["Reserve_B"], label="Reserve B", color="tab:green")
    ax1.set_xlabel("Time Step")
    ax1.set_ylabel("Reserves")

    ax2 = ax1.twinx()
    ax2.plot(df.index, df["Invariant_Drift"], label="k - k_last", color="tab:orange", linestyle="--")
    ax2.set_ylabel("Invariant drift", color="tab:orange")
    ax2.tick_params(axis="y", labelcolor="tab:orange")

    fig.suptitle("Pool Reserves and Invariant Drift Over Time")
    fig.tight_layout()
    fig.legend(loc="upper left")
    plt.show()


if __name__ == "__main__":
    main()
