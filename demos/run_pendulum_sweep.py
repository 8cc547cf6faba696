"""
PENDULUM SWEEP DEMO
===================

PURPOSE:
--------
Load the sample definitions, build a multibody system from a system file
and sweep one generalized coordinate:

1. Register element and joint types from definitions/
2. Load and initialize the system
3. Evaluate mass matrix, forces and positions over the sweep
4. Save results (CSV) and plots (PNG)

For the double pendulum, sweeping the elbow angle (coordinate 1) shows
the coupling term M_0_1 of the generalized mass matrix rising and falling
with the cosine of the angle, while M_1_1 stays constant.

USAGE:
------
    python demos/run_pendulum_sweep.py
    python demos/run_pendulum_sweep.py --system definitions/systems/cart_pendulum.xml --coordinate 1
"""

import argparse
import logging
import os

import numpy as np

from mini_mbs import ElementRegistry, JointRegistry, MultibodySystem, setup_logging
from mini_mbs.explore import sweep_coordinate
from mini_mbs.viz import plot_configuration, plot_sweep


ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFINITIONS = os.path.join(ROOT, 'definitions')


def main():
    parser = argparse.ArgumentParser(
        description='Sweep one generalized coordinate of a multibody system',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python demos/run_pendulum_sweep.py
  python demos/run_pendulum_sweep.py --coordinate 0 --steps 73

This will generate:
  - artifacts/sweep.csv (one row per step)
  - artifacts/sweep_mass.png (generalized mass entries)
  - artifacts/configuration.png (system at the first step)
        """
    )
    parser.add_argument(
        '--system',
        default=os.path.join(DEFINITIONS, 'systems', 'double_pendulum.xml'),
        help='System definition file (default: double pendulum)'
    )
    parser.add_argument(
        '--coordinate',
        type=int,
        default=1,
        help='Index of the generalized coordinate to sweep (default: 1)'
    )
    parser.add_argument(
        '--start',
        type=float,
        default=-np.pi,
        help='First value of the sweep (default: -pi)'
    )
    parser.add_argument(
        '--stop',
        type=float,
        default=np.pi,
        help='Last value of the sweep (default: pi)'
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=37,
        help='Number of sweep values (default: 37)'
    )
    parser.add_argument(
        '--out',
        default='artifacts',
        help='Output directory (default: artifacts)'
    )
    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip the PNG output'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log debug output'
    )
    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    print("=" * 70)
    print("MULTIBODY COORDINATE SWEEP")
    print("=" * 70)

    # ========================================================================
    # STEP 1: LOAD DEFINITIONS AND SYSTEM
    # ========================================================================
    elements = ElementRegistry()
    elements.load_folder(os.path.join(DEFINITIONS, 'elements'))
    joints = JointRegistry()
    joints.load_folder(os.path.join(DEFINITIONS, 'joints'))

    system = MultibodySystem.load_from_file(args.system, elements, joints)
    print(f"System: {args.system}")
    print(f"  Elements: {', '.join(e.name for e in system.elements)}")
    print(f"  Free DOF: {system.total_degrees_of_freedom}")
    print()

    # ========================================================================
    # STEP 2: SWEEP
    # ========================================================================
    values = np.linspace(args.start, args.stop, args.steps)
    df = sweep_coordinate(system, args.coordinate, values)

    os.makedirs(args.out, exist_ok=True)
    csv_path = os.path.join(args.out, 'sweep.csv')
    df.to_csv(csv_path, index=False)

    mass_columns = [c for c in df.columns if c.startswith('M_')]
    print(df[['value'] + mass_columns].describe().loc[['min', 'max']].to_string())
    print()

    # ========================================================================
    # STEP 3: PLOTS
    # ========================================================================
    generated = [f"  [CSV] {csv_path} ({len(df)} rows)"]
    if not args.no_plots:
        mass_path = plot_sweep(
            df, mass_columns, os.path.join(args.out, 'sweep_mass.png'),
            xlabel=f"q[{args.coordinate}]",
            title='Generalized mass matrix entries',
        )
        generated.append(f"  [PLOT] {mass_path}")

        state = np.zeros(2 * system.total_degrees_of_freedom)
        state[args.coordinate] = values[0]
        system.update_elements(system.create_state_vector(state))
        config_path = plot_configuration(system, os.path.join(args.out, 'configuration.png'))
        generated.append(f"  [PLOT] {config_path}")

    print("Generated files:")
    for line in generated:
        print(line)


if __name__ == "__main__":
    main()
