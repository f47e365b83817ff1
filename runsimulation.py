import logging
from marine_pms import PlantEngine
from marine_pms.scenario import ScenarioRunner, generator_trip, load_step

# Enhanced logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('simulation.log')
    ]
)

def get_user_inputs():
    """Interactive input function for the exercise parameters"""
    print("\n" + "="*50)
    print("Marine Power Plant Simulation Setup")
    print("="*50)

    try:
        # Hotel load
        base_load = float(input("Base load (kW, default=900): ") or "900")

        # Generators on the board
        online = input("Generators online (comma separated, default=DG1,DG2): ") or "DG1,DG2"
        generators = [g.strip().upper() for g in online.split(",") if g.strip()]

        # Load step disturbance
        step_enabled = input("Enable load step disturbance? (y/n): ").lower() == 'y'
        step_time = 10.0
        step_kw = 0.0

        if step_enabled:
            step_time = float(input("Step disturbance time (seconds, default=10.0): ") or "10.0")
            step_kw = float(input("Step magnitude (kW, default=400): ") or "400")

        # Generator trip
        trip_enabled = input("Trip a generator during the run? (y/n): ").lower() == 'y'
        trip_time = 20.0
        trip_generator = generators[-1] if generators else "DG2"
        if trip_enabled:
            trip_time = float(input("Trip time (seconds, default=20.0): ") or "20.0")
            trip_generator = (input(f"Generator to trip (default={trip_generator}): ")
                              or trip_generator).upper()

        # Simulation parameters
        dt = float(input("Time step (seconds, default=0.05): ") or "0.05")
        t_end = float(input("Simulation end time (seconds, default=30.0): ") or "30.0")
        seed = int(input("Random seed (default=1): ") or "1")

        return {
            'base_load': base_load,
            'generators': generators,
            'step_enabled': step_enabled,
            'step_time': step_time,
            'step_kw': step_kw,
            'trip_enabled': trip_enabled,
            'trip_time': trip_time,
            'trip_generator': trip_generator,
            'dt': dt,
            't_end': t_end,
            'seed': seed
        }

    except ValueError as e:
        logging.error(f"Invalid input: {e}")
        logging.info("Using default values...")
        return {
            'base_load': 900.0,
            'generators': ['DG1', 'DG2'],
            'step_enabled': True,
            'step_time': 10.0,
            'step_kw': 400.0,
            'trip_enabled': False,
            'trip_time': 20.0,
            'trip_generator': 'DG2',
            'dt': 0.05,
            't_end': 30.0,
            'seed': 1
        }

if __name__ == "__main__":
    # Get user inputs
    params = get_user_inputs()

    logging.info("="*60)
    logging.info("STARTING MARINE POWER PLANT SIMULATION")
    logging.info("="*60)
    logging.info(f"Configuration:")
    logging.info(f"  Base load: {params['base_load']} kW")
    logging.info(f"  Generators online: {', '.join(params['generators'])}")
    logging.info(f"  Step disturbance: {'Enabled' if params['step_enabled'] else 'Disabled'}")
    if params['step_enabled']:
        logging.info(f"    Step time: {params['step_time']}s")
        logging.info(f"    Step magnitude: {params['step_kw']} kW")
    logging.info(f"  Generator trip: {'Enabled' if params['trip_enabled'] else 'Disabled'}")
    if params['trip_enabled']:
        logging.info(f"    {params['trip_generator']} at {params['trip_time']}s")
    logging.info(f"  Time step: {params['dt']}s")
    logging.info(f"  End time: {params['t_end']}s")
    logging.info(f"  Seed: {params['seed']}")
    logging.info("="*60)

    # Create and configure the plant
    plant = PlantEngine(seed=params['seed'], base_load=params['base_load'])
    for gen_id in params['generators']:
        plant.force_generator_state(gen_id, state='RUNNING', breaker_state='CLOSED')

    runner = ScenarioRunner(plant, dt=params['dt'])
    if params['step_enabled']:
        runner.schedule.add(params['step_time'], 'load step', load_step(params['step_kw']))
        logging.info(f"Step disturbance configured: +{params['step_kw']} kW at t={params['step_time']}s")
    if params['trip_enabled']:
        runner.schedule.add(params['trip_time'], 'generator trip',
                            generator_trip(params['trip_generator']))
        logging.info(f"Trip configured: {params['trip_generator']} at t={params['trip_time']}s")

    logging.info("Starting simulation...")
    try:
        trace = runner.run(params['t_end'])

        logging.info("="*60)
        logging.info("SIMULATION COMPLETED SUCCESSFULLY")
        logging.info("="*60)
        logging.info("Final Results:")
        logging.info(f"  Final frequency: {trace['main_freq_Hz'].iloc[-1]:.4f} Hz")
        logging.info(f"  Final voltage: {trace['main_voltage_V'].iloc[-1]:.1f} V")
        logging.info(f"  Final generation: {trace['generation_kW'].iloc[-1]:.1f} kW")
        logging.info(f"  Final load: {trace['load_kW'].iloc[-1]:.1f} kW")

        # Control system analysis
        freq_deviation = abs(trace['main_freq_Hz'].iloc[-1] - plant.settings.nominal_frequency)
        logging.info(f"  Frequency deviation: {freq_deviation:.4f} Hz")
        logging.info(f"  Lowest frequency: {trace['main_freq_Hz'].min():.4f} Hz")
        logging.info(f"  Time in blackout: {trace['blackout'].sum() * params['dt']:.1f}s")

        state = plant.get_state()
        for gen in state.generators.values():
            logging.info(f"  {gen.id}: {gen.state.value}/{gen.breaker_state.value}, "
                         f"P={gen.active_power:.1f} kW")

        logging.info("="*60)

        # Generate plots
        logging.info("Generating plots...")
        runner.plot()

    except Exception as e:
        logging.error(f"Simulation failed: {str(e)}")
        logging.error("Check simulation.log for detailed error information")
        raise

    logging.info("Simulation and analysis complete.")
