"""
Visualization functions for tree growth trajectories and health history.
"""
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

# Set default style
try:
    plt.style.use('seaborn-v0_8')
except OSError:
    plt.style.use('default')

sns.set_palette("husl")


def plot_growth_trajectory(trajectory, save_path=None):
    """Plot size, biomass, vitality and carbon over time.

    Args:
        trajectory: DataFrame from TrajectoryRecorder.to_dataframe()
        save_path: Optional path to save the plot
    """
    age = trajectory['age']

    fig, ((ax1, ax2), (ax3, ax4)) = plt.subplots(2, 2, figsize=(12, 10))
    fig.suptitle('Tree Development Trajectory', fontsize=14)

    # Size
    ax1.plot(age, trajectory['height'], 'g-', label='Height (m)')
    ax1b = ax1.twinx()
    ax1b.plot(age, trajectory['dbh'] * 100.0, 'b--', label='DBH (cm)')
    ax1.set_xlabel('Age (years)')
    ax1.set_ylabel('Height (m)')
    ax1b.set_ylabel('DBH (cm)')
    ax1.grid(True)

    # Biomass compartments
    ax2.stackplot(age, trajectory['trunk'], trajectory['branches'],
                  trajectory['leaves'], trajectory['roots'],
                  labels=['Trunk', 'Branches', 'Leaves', 'Roots'], alpha=0.8)
    ax2.set_xlabel('Age (years)')
    ax2.set_ylabel('Biomass (kg)')
    ax2.legend(loc='upper left')
    ax2.grid(True)

    # Vitality
    ax3.plot(age, trajectory['health'], 'r-', label='Health')
    ax3.plot(age, trajectory['vigor'], 'm-', label='Vigor')
    ax3.plot(age, trajectory['stress_level'], 'k:', label='Stress')
    ax3.set_xlabel('Age (years)')
    ax3.set_ylabel('Index (0-100)')
    ax3.set_ylim(0, 105)
    ax3.legend()
    ax3.grid(True)

    # Carbon
    ax4.plot(age, trajectory['co2_absorbed'], 'c-', label='CO2 absorbed')
    ax4.plot(age, trajectory['carbon_stored'], 'k-', label='Carbon stored')
    ax4.set_xlabel('Age (years)')
    ax4.set_ylabel('kg')
    ax4.legend()
    ax4.grid(True)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    else:
        plt.show()

    plt.close()


def plot_health_history(samples, sample_interval=5, substep_days=1.0 / 60.0, save_path=None):
    """Plot the sampled health history.

    Args:
        samples: Health values from HealthHistory.values()
        sample_interval: Substeps between samples
        substep_days: Simulated days per substep
        save_path: Optional path to save the plot
    """
    days = np.arange(len(samples)) * sample_interval * substep_days

    plt.figure(figsize=(10, 6))
    plt.plot(days, samples, 'r-', label='Health')
    plt.axhline(25.0, color='k', linestyle='--', linewidth=0.8, label='Growth floor')
    plt.xlabel('Days (most recent samples)')
    plt.ylabel('Health')
    plt.ylim(0, 105)
    plt.title('Health History')
    plt.grid(True)
    plt.legend()

    if save_path:
        plt.savefig(save_path)
    else:
        plt.show()

    plt.close()


def plot_seasonal_health(trajectory, save_path=None):
    """Box plot of health by season.

    Args:
        trajectory: DataFrame from TrajectoryRecorder.to_dataframe()
        save_path: Optional path to save the plot
    """
    plt.figure(figsize=(8, 6))
    sns.boxplot(data=trajectory, x='season', y='health',
                order=['spring', 'summer', 'autumn', 'winter'])
    plt.xlabel('Season')
    plt.ylabel('Health')
    plt.title('Health by Season')

    if save_path:
        plt.savefig(save_path)
    else:
        plt.show()

    plt.close()
